"""
Optimistic updates for a caller-owned event cache.

A command applies a change to the local view immediately, then the store
mutation runs; if the store raises StoreError the command compensates by
restoring exactly what it touched, and the error propagates.
"""
import logging
from datetime import date
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, TypeVar

from habit_tracker.exceptions import StoreError

logger = logging.getLogger("habit_tracker.optimistic")

T = TypeVar("T")


class OptimisticUpdate:
    """Command object pairing a local change with its compensation"""

    def __init__(self, apply: Callable[[], None], compensate: Callable[[], None], description: str = ""):
        self._apply = apply
        self._compensate = compensate
        self.description = description
        self.applied = False

    def apply(self) -> None:
        self._apply()
        self.applied = True

    def compensate(self) -> None:
        if self.applied:
            self._compensate()
            self.applied = False

    def run(self, mutation: Callable[[], T]) -> T:
        """Apply, run the store mutation, compensate on StoreError"""
        self.apply()
        try:
            return mutation()
        except StoreError:
            logger.warning(f"Rolling back optimistic update: {self.description}")
            self.compensate()
            raise

    async def run_async(self, mutation: Callable[[], Awaitable[T]]) -> T:
        """Same as run() for an awaitable store call"""
        self.apply()
        try:
            return await mutation()
        except StoreError:
            logger.warning(f"Rolling back optimistic update: {self.description}")
            self.compensate()
            raise


class EventCache:
    """In-memory view of an owner's events, keyed by event id"""

    def __init__(self, events: Iterable = ()):
        self._events: Dict[object, object] = {event.id: event for event in events}

    def all(self) -> List:
        return list(self._events.values())

    def for_habit(self, habit_id) -> List:
        return [e for e in self._events.values() if e.habit_id == habit_id]

    def get(self, event_id) -> Optional[object]:
        return self._events.get(event_id)

    def upsert(self, event) -> OptimisticUpdate:
        """Command that inserts or replaces one event"""
        previous = self._events.get(event.id)

        def apply():
            self._events[event.id] = event

        def compensate():
            if previous is None:
                self._events.pop(event.id, None)
            else:
                self._events[event.id] = previous

        return OptimisticUpdate(apply, compensate, f"upsert event {event.id}")

    def remove(self, event_ids: Iterable) -> OptimisticUpdate:
        """Command that removes events (e.g. relapses superseded by an avoided day)"""
        removed = {event_id: self._events[event_id] for event_id in event_ids if event_id in self._events}

        def apply():
            for event_id in removed:
                self._events.pop(event_id, None)

        def compensate():
            self._events.update(removed)

        return OptimisticUpdate(apply, compensate, f"remove events {sorted(map(str, removed))}")

    def replace_day(self, habit_id, day: date, new_events: Iterable) -> OptimisticUpdate:
        """Command that swaps all of a habit's events on a day for new ones"""
        new_events = list(new_events)
        old = {
            event_id: event for event_id, event in self._events.items()
            if event.habit_id == habit_id and event.date == day
        }

        def apply():
            for event_id in old:
                self._events.pop(event_id, None)
            for event in new_events:
                self._events[event.id] = event

        def compensate():
            for event in new_events:
                self._events.pop(event.id, None)
            self._events.update(old)

        return OptimisticUpdate(apply, compensate, f"replace habit {habit_id} on {day}")
