import sys
from concurrent.futures import Executor, Future
from pathlib import Path

import pytest

# Ensure `places_autocomplete` is importable when running pytest from the repository root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class InlineExecutor(Executor):
    """Runs submitted work immediately on the calling thread."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:  # noqa: BLE001
            future.set_exception(exc)
        return future


class ManualExecutor(Executor):
    """Queues submitted work until the test runs it."""

    def __init__(self):
        self.jobs = []

    def submit(self, fn, *args, **kwargs):
        future = Future()
        self.jobs.append((future, fn, args, kwargs))
        return future

    def run_next(self):
        future, fn, args, kwargs = self.jobs.pop(0)
        future.set_result(fn(*args, **kwargs))

    def run_all(self):
        while self.jobs:
            self.run_next()


@pytest.fixture
def inline_executor():
    return InlineExecutor()


@pytest.fixture
def manual_executor():
    return ManualExecutor()
