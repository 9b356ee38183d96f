"""
Base Reconciler

Shared state machine of the five control loops:

    Initializing -> Reconciling -> Ready -> Terminating -> Gone

Concrete controllers only provide their dependents, their teardown kinds and
their secondary watches.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..core.constants import ConditionConstants, Kind
from ..core.models import Condition, KubeObject, is_ready
from ..core.utils import add_finalizer, remove_finalizer
from ..namespaces.lifecycle import teardown_owned_objects
from ..store.client import Client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Request:
    """Identity of an object to reconcile"""
    kind: Kind
    name: str
    namespace: str = ""

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind.value} {self.namespace}/{self.name}"
        return f"{self.kind.value} {self.name}"


MapperFn = Callable[[KubeObject], List[Request]]


@dataclass
class WatchSpec:
    """
    A kind a controller depends on.

    Without a mapper, events enqueue the object itself (the primary kind).
    """
    kind: Kind
    mapper: Optional[MapperFn] = None

    def requests_for(self, obj: KubeObject) -> List[Request]:
        if self.mapper is None:
            return [Request(obj.KIND, obj.metadata.name, obj.metadata.namespace)]
        return self.mapper(obj)


def owner_mapper(owner_kind: Kind) -> MapperFn:
    """Map an object to its owners of ``owner_kind`` living in the same namespace"""
    def mapper(obj: KubeObject) -> List[Request]:
        namespace = obj.metadata.namespace if owner_kind.namespaced else ""
        return [
            Request(owner_kind, ref.name, namespace)
            for ref in obj.metadata.owner_references
            if ref.kind == owner_kind.value
        ]
    return mapper


class BaseReconciler(ABC):
    """Finalizer-gated reconcile loop for one kind"""

    KIND: Kind
    FINALIZER: str
    OWNED_KINDS: List[Kind] = []

    def __init__(self, client: Client):
        self.client = client

    @property
    def name(self) -> str:
        return self.KIND.value

    def watches(self) -> List[WatchSpec]:
        """Primary kind plus every secondary watch of the controller"""
        return [WatchSpec(self.KIND)]

    def reconcile(self, request: Request) -> bool:
        """
        Drive one object towards its desired state.

        Every step is idempotent; any error aborts the attempt and is raised
        to the caller, which retries later.

        Args:
            request: Object to reconcile

        Returns:
            bool: False while a deleting object still waits for owned objects
                to disappear, True otherwise
        """
        obj = self.client.get_optional(self.KIND, request.name, request.namespace)
        if obj is None:
            logger.debug(f"{request} no longer exists")
            return True

        if obj.is_deleting:
            return self._handle_deletion(obj)

        if self.FINALIZER not in obj.metadata.finalizers:
            self.client.mutate(obj, lambda o: add_finalizer(o, self.FINALIZER))

        self.reconcile_dependents(obj)

        if not is_ready(obj):
            self.client.mutate(obj, self._set_ready, status=True)
            logger.info(f"{obj.key()} is ready")
        return True

    @abstractmethod
    def reconcile_dependents(self, obj: KubeObject) -> None:
        """
        Create or update everything the object owns and refresh its status.

        ``obj`` must be kept current, i.e. written through ``client.mutate``.
        """

    def teardown(self, obj: KubeObject) -> bool:
        """Delete owned objects; True once nothing owned is left"""
        return teardown_owned_objects(self.client, obj, self.OWNED_KINDS)

    def _set_ready(self, obj: KubeObject) -> None:
        obj.status.observed_generation = obj.metadata.generation
        obj.status.set_condition(Condition(
            type=ConditionConstants.READY,
            status=ConditionConstants.Status.TRUE.value,
            reason=ConditionConstants.SETUP_COMPLETE_REASON,
            message=f"{self.name} setup is complete.",
        ))

    def _set_terminating(self, obj: KubeObject) -> None:
        obj.status.observed_generation = obj.metadata.generation
        obj.status.set_condition(Condition(
            type=ConditionConstants.READY,
            status=ConditionConstants.Status.FALSE.value,
            reason=ConditionConstants.TERMINATING_REASON,
            message=f"{self.name} is being terminated",
        ))

    def _handle_deletion(self, obj: KubeObject) -> bool:
        ready = obj.status.get_condition(ConditionConstants.READY)
        if (ready is None or ready.status != ConditionConstants.Status.FALSE
                or ready.reason != ConditionConstants.TERMINATING_REASON):
            # Watchers must observe the intent before any dependent disappears
            self.client.mutate(obj, self._set_terminating, status=True)
            logger.info(f"{obj.key()} is terminating")

        if not self.teardown(obj):
            logger.debug(f"{obj.key()} still owns objects, waiting for cleanup")
            return False

        if self.FINALIZER in obj.metadata.finalizers:
            self.client.mutate(obj, lambda o: remove_finalizer(o, self.FINALIZER))
            logger.info(f"Removed finalizer from {obj.key()}")
        return True
