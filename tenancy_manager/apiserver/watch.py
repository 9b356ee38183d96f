"""
Filtered Watch

Per-client bridge relaying upstream watch events to one caller, keeping only
the events whose object the caller may currently see. Nothing is buffered:
a slow consumer only stalls its own upstream subscription.
"""

import logging
from typing import Callable, Iterator, Type

from ..core.exceptions import TenancyError
from ..core.models import KubeObject
from ..store.base import EventType, WatchEvent, Watcher, error_status

logger = logging.getLogger(__name__)

VisibilityFn = Callable[[KubeObject], bool]


def internal_error_event(error: Exception) -> WatchEvent:
    return WatchEvent(type=EventType.ERROR, status=error_status(500, "InternalError", str(error)))


class FilteredWatch(Watcher):
    """
    Visibility-filtered view of an upstream watch.

    Upstream ERROR events are forwarded unfiltered and end the stream. A
    conversion or visibility failure is turned into an internal-error event
    and also ends the stream.
    """

    def __init__(self, upstream: Watcher, model: Type[KubeObject], visible: VisibilityFn):
        self._upstream = upstream
        self._model = model
        self._visible = visible

    def _convert(self, obj) -> KubeObject:
        if isinstance(obj, self._model):
            return obj
        if isinstance(obj, dict):
            return self._model.from_dict(obj)
        raise TypeError(f"unable to convert {type(obj).__name__} to {self._model.KIND.value}")

    def __iter__(self) -> Iterator[WatchEvent]:
        try:
            for event in self._upstream:
                if event.type == EventType.ERROR:
                    yield event
                    return

                try:
                    obj = self._convert(event.object)
                    visible = self._visible(obj)
                except (TenancyError, TypeError, ValueError, KeyError) as e:
                    logger.error(f"Terminating {self._model.KIND.value} watch: {e}")
                    yield internal_error_event(e)
                    return

                if visible:
                    yield WatchEvent(type=event.type, object=obj)
        finally:
            self._upstream.stop()

    def stop(self) -> None:
        self._upstream.stop()
