"""
Function hotspot statistics.

Keeps running call/revert counters per (function, contract) and ranks them
by revert rate.
"""

import logging
import threading
import time
from collections import defaultdict
from contextlib import contextmanager
from typing import Callable, DefaultDict, Iterable, List, Optional

from ..core.exceptions import AggregationUnavailable
from ..core.types import CounterEntry, ExecutionRecord, ExecutionStep, FunctionStatistics, StatsKey

logger = logging.getLogger(__name__)


class CounterGate:
    """
    Shared/exclusive lock around the counter store.

    Any number of updaters may hold the shared side at once. A rebuild takes
    the exclusive side, which waits for in-flight updates to finish and holds
    back new ones until the rebuild is done.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._active = 0
        self._exclusive = False
        self._waiting = 0

    @contextmanager
    def shared(self):
        with self._cond:
            # Waiting rebuilds go before new updates
            while self._exclusive or self._waiting:
                self._cond.wait()
            self._active += 1
        try:
            yield
        finally:
            with self._cond:
                self._active -= 1
                if not self._active:
                    self._cond.notify_all()

    @contextmanager
    def exclusive(self):
        with self._cond:
            self._waiting += 1
            try:
                while self._exclusive or self._active:
                    self._cond.wait()
            finally:
                self._waiting -= 1
            self._exclusive = True
        try:
            yield
        finally:
            with self._cond:
                self._exclusive = False
                self._cond.notify_all()


class HotspotAggregator:
    """
    Incremental per-function call/revert counters over an owned counter store.

    Updates to one key are serialized by a lock for that key; updates to
    different keys run in parallel. Clearing and recomputing hold the
    counter gate exclusively, so no update straddles a rebuild.
    """

    def __init__(self, store):
        """
        Initialize with the counter store this aggregator owns.

        Args:
            store: Counter store exposing get/upsert/clear/items
        """
        self.store = store
        self._gate = CounterGate()
        self._key_locks: DefaultDict[StatsKey, threading.Lock] = defaultdict(threading.Lock)
        self._key_locks_guard = threading.Lock()

    def _lock_for(self, key: StatsKey) -> threading.Lock:
        with self._key_locks_guard:
            return self._key_locks[key]

    def record_call(self, function_name: str, contract_address: Optional[str], reverted: bool) -> None:
        """
        Count one call of a function, and one revert if it reverted.

        Raises:
            AggregationUnavailable: If the counter store fails
        """
        with self._gate.shared():
            self._apply(function_name, contract_address, reverted)

    def record_steps(self, steps: Iterable[ExecutionStep], persist: Optional[Callable[[], None]] = None) -> int:
        """
        Record every named step of a flow.

        A rebuild running at the same time sees either all of the flow's
        steps or none of them.

        Args:
            steps: Steps of one flow
            persist: Optional callable run first under the same hold, such as
                saving the flow, so a rebuild never sees the flow without its counts

        Returns:
            Number of calls recorded
        """
        with self._gate.shared():
            if persist is not None:
                persist()
            return self._apply_steps(steps)

    def _apply(self, function_name: str, contract_address: Optional[str], reverted: bool) -> None:
        key = (function_name, contract_address or None)
        with self._lock_for(key):
            try:
                current = self.store.get(key) or CounterEntry()
                self.store.upsert(key, CounterEntry(
                    call_count=current.call_count + 1,
                    revert_count=current.revert_count + (1 if reverted else 0),
                    last_updated=int(time.time() * 1000),
                ))
            except Exception as e:
                raise AggregationUnavailable(
                    f"Could not record call to {function_name}: {e}"
                ) from e

    def _apply_steps(self, steps: Iterable[ExecutionStep]) -> int:
        recorded = 0
        for step in steps:
            if step.function_name:
                self._apply(step.function_name, step.contract_address, step.reverted)
                recorded += 1
        return recorded

    def _all_stats(self) -> List[FunctionStatistics]:
        try:
            items = self.store.items()
        except Exception as e:
            raise AggregationUnavailable(f"Could not read function statistics: {e}") from e
        return [
            FunctionStatistics(
                function_name=name,
                contract_address=contract,
                call_count=entry.call_count,
                revert_count=entry.revert_count,
            )
            for (name, contract), entry in items
        ]

    def get_hotspots(self, limit: int = 10) -> List[FunctionStatistics]:
        """
        Functions ranked by revert rate, then by call count.

        Keys with no recorded calls are left out.
        """
        stats = [s for s in self._all_stats() if s.call_count >= 1]
        stats.sort(key=lambda s: (-s.revert_rate, -s.call_count, s.function_name, s.contract_address or ''))
        return stats[:max(limit, 0)]

    def get_all_stats(self) -> List[FunctionStatistics]:
        """All function statistics, most called first."""
        stats = self._all_stats()
        stats.sort(key=lambda s: (-s.call_count, s.function_name, s.contract_address or ''))
        return stats

    def top_revert_functions(self, limit: int = 5) -> List[str]:
        """Names among the top `limit` hotspots that have reverted at least once."""
        return [h.function_name for h in self.get_hotspots(limit) if h.revert_count > 0]

    def clear(self) -> None:
        """
        Drop all counters.

        Raises:
            AggregationUnavailable: If the counter store fails
        """
        with self._gate.exclusive():
            self._reset()

    def _reset(self) -> None:
        # Only called with the gate held exclusively, so no key lock is in use
        with self._key_locks_guard:
            self._key_locks = defaultdict(threading.Lock)
        try:
            self.store.clear()
        except Exception as e:
            raise AggregationUnavailable(f"Could not clear function statistics: {e}") from e

    def recompute_all(self, records: Iterable[ExecutionRecord]) -> int:
        """
        Rebuild all counters from scratch by replaying every step of every flow.

        Updates that arrive during the rebuild wait for it to finish and are
        then applied on top of the rebuilt counters. The result depends only
        on the steps replayed, not on their order.

        Returns:
            Number of flows replayed
        """
        with self._gate.exclusive():
            logger.info("Recomputing function hotspots...")
            self._reset()
            replayed = 0
            for record in records:
                self._apply_steps(record.steps)
                replayed += 1
            logger.info("Recomputed stats from %d transactions", replayed)
            return replayed
