"""
Reverse Index

Incrementally maintained view of the objects secondary watches fan out to.
Each indexed kind is primed by a single list and then kept current from
watch events, so a secondary event costs a lookup instead of a full list.
"""

import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..core.constants import Kind
from ..core.exceptions import MappingError, TenancyError
from ..core.models import KubeObject
from ..store.base import EventType, WatchEvent
from ..store.client import Client
from .base import Request

logger = logging.getLogger(__name__)

IndexKey = Tuple[str, str]


def _resource_version(obj: KubeObject) -> int:
    try:
        return int(obj.metadata.resource_version)
    except ValueError:
        return 0


class ReverseIndex:
    """Namespace-keyed index of the objects of selected kinds"""

    def __init__(self, client: Client, kinds: Iterable[Kind]):
        """
        Initialize the index

        Args:
            client: Store client used for priming
            kinds: Kinds to index
        """
        self.client = client
        self.kinds = list(kinds)
        self._lock = threading.RLock()
        self._objects: Dict[Kind, Dict[IndexKey, KubeObject]] = {}

    def is_primed(self, kind: Kind) -> bool:
        with self._lock:
            return kind in self._objects

    def prime(self, kind: Kind) -> None:
        """
        Load every object of ``kind``

        Raises:
            MappingError: If the list fails
        """
        try:
            objects = self.client.list(kind)
        except TenancyError as e:
            raise MappingError(f"listing {kind.value} for the reverse index: {e}")

        with self._lock:
            self._objects[kind] = {(o.metadata.namespace, o.metadata.name): o for o in objects}
        logger.debug(f"Primed reverse index with {len(objects)} {kind.value} objects")

    def prime_all(self) -> None:
        for kind in self.kinds:
            self.prime(kind)

    def invalidate(self, kind: Optional[Kind] = None) -> None:
        """Drop indexed state so the next lookup lists again"""
        with self._lock:
            if kind is None:
                self._objects.clear()
            else:
                self._objects.pop(kind, None)

    def observe(self, event: WatchEvent) -> None:
        """Apply a watch event of an indexed kind"""
        obj = event.object
        if obj is None or obj.KIND not in self.kinds:
            return

        with self._lock:
            objects = self._objects.get(obj.KIND)
            if objects is None:
                # not primed yet; the priming list will include this change
                return
            key = (obj.metadata.namespace, obj.metadata.name)
            if event.type == EventType.DELETED:
                objects.pop(key, None)
                return
            known = objects.get(key)
            if known is not None and _resource_version(known) > _resource_version(obj):
                return
            objects[key] = obj

    def objects(self, kind: Kind, namespace: Optional[str] = None) -> List[KubeObject]:
        """
        Indexed objects of ``kind``, priming the kind on first use

        Raises:
            MappingError: If priming fails
        """
        if not self.is_primed(kind):
            self.prime(kind)
        with self._lock:
            return [
                obj for (obj_namespace, _), obj in sorted(self._objects.get(kind, {}).items())
                if namespace is None or obj_namespace == namespace
            ]

    def requests(self, kind: Kind, namespace: Optional[str] = None,
                 predicate: Optional[Callable[[KubeObject], bool]] = None) -> List[Request]:
        """Reconcile requests for the indexed objects matching ``predicate``"""
        return [
            Request(kind, obj.metadata.name, obj.metadata.namespace)
            for obj in self.objects(kind, namespace)
            if predicate is None or predicate(obj)
        ]
