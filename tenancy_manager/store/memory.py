"""
In-Memory Resource Store

Thread-safe store with the Kubernetes semantics the controllers rely on:
resource versions, generation bumps on spec changes, a status subresource,
finalizers, namespace termination and owner-reference garbage collection.
Backs the test suite and the synchronous reconcile drivers in it.
"""

import logging
import queue
import threading
import uuid
from typing import Dict, Iterator, List, Optional, Tuple

from ..core.constants import ErrorMessages, Kind
from ..core.exceptions import (
    AlreadyExistsError, BadRequestError, ConflictError, ForbiddenError, NotFoundError
)
from ..core.models import KubeObject
from ..core.utils import utc_now
from .base import EventType, ResourceStore, WatchEvent, Watcher

logger = logging.getLogger(__name__)

ObjectKey = Tuple[Kind, str, str]

_STOP = object()


class MemoryWatcher(Watcher):
    """Unbounded queue fed by the store while holding its lock"""

    def __init__(self, store: 'MemoryStore', kind: Kind, namespace: Optional[str]):
        self.kind = kind
        self.namespace = namespace
        self._store = store
        self._queue: queue.Queue = queue.Queue()
        self._stopped = False

    def matches(self, obj: KubeObject) -> bool:
        if obj.KIND != self.kind:
            return False
        return self.namespace is None or obj.metadata.namespace == self.namespace

    def offer(self, event: WatchEvent) -> None:
        if not self._stopped:
            self._queue.put(event)

    def __iter__(self) -> Iterator[WatchEvent]:
        while True:
            event = self._queue.get()
            if event is _STOP:
                return
            yield event

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._store.remove_watcher(self)
        self._queue.put(_STOP)


class MemoryStore(ResourceStore):
    """
    Resource Store kept in process memory.

    ``writes`` counts every create/update/update_status/delete call so tests
    can assert that a reconcile pass performed no writes at all.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._objects: Dict[ObjectKey, KubeObject] = {}
        self._watchers: List[MemoryWatcher] = []
        self._resource_version = 0
        self.writes = 0

    @staticmethod
    def _key(kind: Kind, name: str, namespace: str = "") -> ObjectKey:
        return (kind, namespace if kind.namespaced else "", name)

    def _next_resource_version(self) -> str:
        self._resource_version += 1
        return str(self._resource_version)

    def _require(self, kind: Kind, name: str, namespace: str) -> KubeObject:
        obj = self._objects.get(self._key(kind, name, namespace))
        if obj is None:
            raise NotFoundError(kind.value, name)
        return obj

    def _emit(self, event_type: EventType, obj: KubeObject) -> None:
        for watcher in list(self._watchers):
            if watcher.matches(obj):
                watcher.offer(WatchEvent(type=event_type, object=obj.deepcopy()))

    def _check_version(self, current: KubeObject, obj: KubeObject) -> None:
        requested = obj.metadata.resource_version
        if requested and requested != current.metadata.resource_version:
            raise ConflictError(ErrorMessages.StoreError.CONFLICT.format(kind=obj.KIND.value, name=obj.name))

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def get(self, kind: Kind, name: str, namespace: str = "") -> KubeObject:
        with self._lock:
            return self._require(kind, name, namespace).deepcopy()

    def list(self, kind: Kind, namespace: Optional[str] = None) -> List[KubeObject]:
        with self._lock:
            items = [
                obj.deepcopy() for key, obj in self._objects.items()
                if key[0] == kind and (namespace is None or not kind.namespaced or key[1] == namespace)
            ]
        return sorted(items, key=lambda o: (o.metadata.namespace, o.metadata.name))

    def watch(self, kind: Kind, namespace: Optional[str] = None) -> Watcher:
        watcher = MemoryWatcher(self, kind, namespace if kind.namespaced else None)
        with self._lock:
            self._watchers.append(watcher)
        return watcher

    def remove_watcher(self, watcher: MemoryWatcher) -> None:
        with self._lock:
            if watcher in self._watchers:
                self._watchers.remove(watcher)

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------

    def create(self, obj: KubeObject) -> KubeObject:
        kind = obj.KIND
        with self._lock:
            self.writes += 1
            if not obj.metadata.name:
                raise BadRequestError(f"{kind.value}: metadata.name is required")
            if kind.namespaced and not obj.metadata.namespace:
                raise BadRequestError(f"{kind.value} {obj.name}: metadata.namespace is required")

            key = self._key(kind, obj.metadata.name, obj.metadata.namespace)
            if key in self._objects:
                raise AlreadyExistsError(ErrorMessages.StoreError.ALREADY_EXISTS.format(kind=kind.value, name=obj.name))

            if kind.namespaced:
                namespace = self._objects.get(self._key(Kind.NAMESPACE, obj.metadata.namespace))
                if namespace is None:
                    raise NotFoundError(Kind.NAMESPACE.value, obj.metadata.namespace)
                if namespace.is_deleting:
                    raise ForbiddenError(kind.value, obj.name,
                                         f"unable to create new content in namespace {namespace.name} "
                                         f"because it is being terminated")

            stored = obj.deepcopy()
            meta = stored.metadata
            if not kind.namespaced:
                meta.namespace = ""
            meta.uid = str(uuid.uuid4())
            meta.generation = 1
            meta.creation_timestamp = utc_now()
            meta.deletion_timestamp = None
            meta.resource_version = self._next_resource_version()
            if hasattr(stored, 'status'):
                stored.status = type(stored.status)()

            self._objects[key] = stored
            logger.debug(f"Created {stored.key()}")
            self._emit(EventType.ADDED, stored)
            return stored.deepcopy()

    def update(self, obj: KubeObject) -> KubeObject:
        kind = obj.KIND
        with self._lock:
            self.writes += 1
            current = self._require(kind, obj.metadata.name, obj.metadata.namespace)
            self._check_version(current, obj)

            updated = obj.deepcopy()
            meta = updated.metadata
            meta.namespace = current.metadata.namespace
            meta.uid = current.metadata.uid
            meta.creation_timestamp = current.metadata.creation_timestamp
            meta.deletion_timestamp = current.metadata.deletion_timestamp
            meta.generation = current.metadata.generation
            meta.resource_version = current.metadata.resource_version
            if hasattr(updated, 'status'):
                updated.status = current.status.__class__.from_dict(current.status.to_dict())

            if updated.to_dict() == current.to_dict():
                return current.deepcopy()

            if updated.desired_state() != current.desired_state():
                meta.generation += 1
            meta.resource_version = self._next_resource_version()

            key = self._key(kind, meta.name, meta.namespace)
            self._objects[key] = updated
            if updated.is_deleting and not meta.finalizers:
                self._remove(key)
            else:
                self._emit(EventType.MODIFIED, updated)
            return updated.deepcopy()

    def update_status(self, obj: KubeObject) -> KubeObject:
        kind = obj.KIND
        with self._lock:
            self.writes += 1
            current = self._require(kind, obj.metadata.name, obj.metadata.namespace)
            if not hasattr(current, 'status'):
                raise BadRequestError(f"{kind.value} has no status subresource")
            self._check_version(current, obj)

            updated = current.deepcopy()
            updated.status = obj.status.__class__.from_dict(obj.status.to_dict())
            if updated.to_dict() == current.to_dict():
                return current.deepcopy()

            updated.metadata.resource_version = self._next_resource_version()
            self._objects[self._key(kind, updated.name, updated.namespace)] = updated
            self._emit(EventType.MODIFIED, updated)
            return updated.deepcopy()

    def delete(self, kind: Kind, name: str, namespace: str = "") -> None:
        with self._lock:
            self.writes += 1
            self._require(kind, name, namespace)
            self._delete(self._key(kind, name, namespace))

    # ------------------------------------------------------------------
    # deletion internals (called with the lock held)
    # ------------------------------------------------------------------

    def _mark_deleting(self, obj: KubeObject) -> None:
        obj.metadata.deletion_timestamp = utc_now()
        obj.metadata.resource_version = self._next_resource_version()
        self._emit(EventType.MODIFIED, obj)

    def _delete(self, key: ObjectKey) -> None:
        obj = self._objects.get(key)
        if obj is None:
            return

        if obj.KIND == Kind.NAMESPACE:
            if not obj.is_deleting:
                self._mark_deleting(obj)
            for content_key in [k for k in self._objects if k[0].namespaced and k[1] == obj.name]:
                content = self._objects.get(content_key)
                if content is not None and not content.is_deleting:
                    self._delete(content_key)
            self._finalize_namespace(obj.name)
        elif obj.metadata.finalizers:
            if not obj.is_deleting:
                self._mark_deleting(obj)
        else:
            self._remove(key)

    def _remove(self, key: ObjectKey) -> None:
        obj = self._objects.pop(key, None)
        if obj is None:
            return
        obj.metadata.resource_version = self._next_resource_version()
        logger.debug(f"Removed {obj.key()}")
        self._emit(EventType.DELETED, obj)

        self._collect_dependents(obj)
        if obj.KIND.namespaced:
            self._finalize_namespace(obj.metadata.namespace)

    def _collect_dependents(self, owner: KubeObject) -> None:
        """Delete objects whose every owner is gone"""
        live_uids = {o.metadata.uid for o in self._objects.values()}
        for dep_key, dep in list(self._objects.items()):
            refs = dep.metadata.owner_references
            if not any(ref.uid == owner.metadata.uid for ref in refs):
                continue
            if any(ref.uid in live_uids for ref in refs):
                continue
            current = self._objects.get(dep_key)
            if current is not None and (not current.is_deleting or current.KIND == Kind.NAMESPACE):
                self._delete(dep_key)

    def _finalize_namespace(self, name: str) -> None:
        key = self._key(Kind.NAMESPACE, name)
        namespace = self._objects.get(key)
        if namespace is None or not namespace.is_deleting or namespace.metadata.finalizers:
            return
        if any(k[0].namespaced and k[1] == name for k in self._objects):
            return
        self._remove(key)
