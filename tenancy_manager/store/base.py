"""
Resource Store Interface

Generic get/list/watch/create/update/delete primitive with optimistic
concurrency, finalizer semantics and owner-reference garbage collection.
Adapters: ``MemoryStore`` and ``KubernetesStore``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from ..core.constants import Kind
from ..core.models import KubeObject


class EventType(str, Enum):
    """Watch event types"""
    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    ERROR = "ERROR"

    def __str__(self) -> str:
        return self.value


@dataclass
class WatchEvent:
    """
    One change notification.

    ``object`` is the typed object for ADDED/MODIFIED/DELETED. ERROR events
    carry a Kubernetes ``Status`` dictionary in ``status`` instead.
    """
    type: EventType
    object: Optional[KubeObject] = None
    status: Optional[Dict[str, Any]] = None

    @property
    def resource_version(self) -> int:
        if self.object is None:
            return 0
        try:
            return int(self.object.metadata.resource_version)
        except ValueError:
            return 0


def error_status(code: int, reason: str, message: str) -> Dict[str, Any]:
    """Build a Kubernetes ``Status`` body for an ERROR watch event"""
    return {
        'kind': 'Status',
        'apiVersion': 'v1',
        'status': 'Failure',
        'code': code,
        'reason': reason,
        'message': message,
    }


class Watcher(ABC):
    """Stream of watch events; iteration ends once ``stop()`` is called"""

    @abstractmethod
    def __iter__(self) -> Iterator[WatchEvent]:
        pass

    @abstractmethod
    def stop(self) -> None:
        pass


class ResourceStore(ABC):
    """
    Abstract object store consumed by the controllers and the API layer.

    Every method returns copies; mutating a returned object never changes
    the store until it is written back.
    """

    @abstractmethod
    def get(self, kind: Kind, name: str, namespace: str = "") -> KubeObject:
        """
        Fetch one object.

        Raises:
            NotFoundError: If the object does not exist
        """

    @abstractmethod
    def list(self, kind: Kind, namespace: Optional[str] = None) -> List[KubeObject]:
        """List objects of a kind, optionally restricted to one namespace"""

    @abstractmethod
    def create(self, obj: KubeObject) -> KubeObject:
        """
        Create an object. Status is not persisted on create.

        Raises:
            AlreadyExistsError: If the name is taken
        """

    @abstractmethod
    def update(self, obj: KubeObject) -> KubeObject:
        """
        Replace metadata and spec of an object. Status is not persisted.

        Raises:
            NotFoundError: If the object does not exist
            ConflictError: If ``obj.metadata.resource_version`` is stale
        """

    @abstractmethod
    def update_status(self, obj: KubeObject) -> KubeObject:
        """
        Replace the status of an object.

        Raises:
            NotFoundError: If the object does not exist
            ConflictError: If ``obj.metadata.resource_version`` is stale
        """

    @abstractmethod
    def delete(self, kind: Kind, name: str, namespace: str = "") -> None:
        """
        Request deletion. Objects with finalizers only get a deletion
        timestamp and stay until the last finalizer is removed.

        Raises:
            NotFoundError: If the object does not exist
        """

    @abstractmethod
    def watch(self, kind: Kind, namespace: Optional[str] = None) -> Watcher:
        """Open a watch on a kind, optionally restricted to one namespace"""
