"""
Watch event helpers for tests

Predicates over watch events and an ``EventTracer`` that records events of
several kinds into one stream ordered by resource version.
"""

import logging
import threading
from typing import Callable, Iterable, List, Optional

from tenancy_manager.core.constants import ConditionConstants, Kind
from tenancy_manager.store.base import EventType, ResourceStore, WatchEvent

logger = logging.getLogger(__name__)

EventPredicate = Callable[[WatchEvent], bool]


def is_type(event_type: EventType) -> EventPredicate:
    return lambda event: event.type == event_type


def is_kind(kind: Kind) -> EventPredicate:
    return lambda event: event.object is not None and event.object.KIND == kind


def is_object_name(name: str, namespace: Optional[str] = None) -> EventPredicate:
    def predicate(event: WatchEvent) -> bool:
        if event.object is None or event.object.metadata.name != name:
            return False
        return namespace is None or event.object.metadata.namespace == namespace
    return predicate


def has_ready_status(status: str, reason: Optional[str] = None) -> EventPredicate:
    """Matches events whose object carries the given Ready condition"""
    def predicate(event: WatchEvent) -> bool:
        obj_status = getattr(event.object, 'status', None)
        if obj_status is None or not hasattr(obj_status, 'get_condition'):
            return False
        ready = obj_status.get_condition(ConditionConstants.READY)
        if ready is None or ready.status != status:
            return False
        return reason is None or ready.reason == reason
    return predicate


def all_of(*predicates: EventPredicate) -> EventPredicate:
    return lambda event: all(p(event) for p in predicates)


def any_of(*predicates: EventPredicate) -> EventPredicate:
    return lambda event: any(p(event) for p in predicates)


class EventTracer:
    """
    Record watch events of several kinds.

    One thread drains each watch. ``events`` returns everything seen so far
    ordered by resource version, which gives a single timeline across kinds.
    """

    def __init__(self, store: ResourceStore, kinds: Iterable[Kind], namespace: Optional[str] = None):
        kinds = list(kinds)
        self._condition = threading.Condition()
        self._events: List[WatchEvent] = []
        self._watchers = [store.watch(kind, namespace) for kind in kinds]
        self._threads = [
            threading.Thread(target=self._drain, args=(watcher,), daemon=True,
                             name=f"event-tracer-{kind.value}")
            for kind, watcher in zip(kinds, self._watchers)
        ]
        for thread in self._threads:
            thread.start()

    def _drain(self, watcher) -> None:
        for event in watcher:
            with self._condition:
                self._events.append(event)
                self._condition.notify_all()

    @property
    def events(self) -> List[WatchEvent]:
        with self._condition:
            return sorted(self._events, key=lambda e: e.resource_version)

    def wait_for(self, predicate: EventPredicate, timeout: float = 5.0) -> bool:
        """Block until an event matching ``predicate`` was recorded"""
        with self._condition:
            return self._condition.wait_for(lambda: any(predicate(e) for e in self._events), timeout=timeout)

    def index_of(self, predicate: EventPredicate) -> int:
        """Position of the first matching event in the timeline, -1 if none"""
        for index, event in enumerate(self.events):
            if predicate(event):
                return index
        return -1

    def happened_before(self, first: EventPredicate, second: EventPredicate) -> bool:
        """True when both were observed and ``first`` strictly precedes ``second``"""
        first_index = self.index_of(first)
        second_index = self.index_of(second)
        return first_index != -1 and second_index != -1 and first_index < second_index

    def close(self) -> None:
        for watcher in self._watchers:
            watcher.stop()
        for thread in self._threads:
            thread.join(timeout=1.0)
