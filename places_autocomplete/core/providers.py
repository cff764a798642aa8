"""Provider interface shared by the Google Places client and the local search fallback."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, List, Optional, TypeVar

from places_autocomplete.core.models import Candidate, QueryParameters, ResolvedAddress

logger = logging.getLogger(__name__)

T = TypeVar("T")

SuggestCallback = Callable[[Optional[List[Candidate]]], None]
ResolveCallback = Callable[[Optional[ResolvedAddress]], None]


class Subscription:
    """Handle for a suggest call; cancelling stops any further deliveries."""

    def __init__(self, on_cancel: Optional[Callable[[], None]] = None) -> None:
        self._cancelled = threading.Event()
        self._on_cancel = on_cancel

    @property
    def active(self) -> bool:
        return not self._cancelled.is_set()

    def cancel(self) -> None:
        if self._cancelled.is_set():
            return
        self._cancelled.set()
        if self._on_cancel is not None:
            self._on_cancel()


class PlacesProvider(ABC):
    """Common contract: ``suggest`` candidates for text, ``resolve`` a candidate to an address.

    I/O runs on ``io_executor``; callbacks are always submitted to ``callback_executor``,
    which the caller chooses. The default callback executor is single-threaded so
    deliveries are serialized.
    """

    name = "provider"

    def __init__(
        self,
        io_executor: Optional[Executor] = None,
        callback_executor: Optional[Executor] = None,
    ) -> None:
        self._owned_executors: List[Executor] = []
        if io_executor is None:
            io_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix=f"{self.name}-io")
            self._owned_executors.append(io_executor)
        if callback_executor is None:
            callback_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{self.name}-callback")
            self._owned_executors.append(callback_executor)
        self._io_executor = io_executor
        self._callback_executor = callback_executor

    @abstractmethod
    def suggest(self, params: QueryParameters, deliver: SuggestCallback) -> Subscription:
        """Start a suggest call; ``deliver`` receives candidate lists or ``None`` on failure."""

    @abstractmethod
    def resolve(self, candidate: Candidate, deliver: ResolveCallback) -> None:
        """Resolve ``candidate``; ``deliver`` receives the address or ``None``."""

    def close(self) -> None:
        for executor in self._owned_executors:
            executor.shutdown(wait=False)
        self._owned_executors = []

    def _run_in_background(self, work: Callable[[], T], deliver: Callable[[Optional[T]], None],
                           subscription: Optional[Subscription] = None) -> None:
        self._io_executor.submit(self._run_safe, work, deliver, subscription)

    def _run_safe(self, work: Callable[[], T], deliver: Callable[[Optional[T]], None],
                  subscription: Optional[Subscription]) -> None:
        try:
            result = work()
        except Exception as exc:  # noqa: BLE001
            logger.exception("%s background call failed: %s", self.name, exc)
            result = None
        self._dispatch(deliver, result, subscription)

    def _dispatch(self, deliver: Callable[[Optional[T]], None], value: Optional[T],
                  subscription: Optional[Subscription] = None) -> None:
        if subscription is not None and not subscription.active:
            return
        self._callback_executor.submit(self._deliver_safe, deliver, value, subscription)

    def _deliver_safe(self, deliver: Callable[[Optional[T]], None], value: Optional[T],
                      subscription: Optional[Subscription]) -> None:
        if subscription is not None and not subscription.active:
            return
        try:
            deliver(value)
        except Exception as exc:  # noqa: BLE001
            logger.exception("%s callback raised: %s", self.name, exc)
