"""
Store Client

Thin wrapper around a ``ResourceStore`` used by the controllers. Adds the
read-modify-write helpers that retry on optimistic concurrency conflicts and
skip writes when nothing changed.
"""

import logging
from dataclasses import fields
from enum import Enum
from typing import Callable, List, Optional, Tuple

from ..core.constants import Kind
from ..core.exceptions import ConflictError, NotFoundError
from ..core.models import KubeObject
from .base import ResourceStore, Watcher

logger = logging.getLogger(__name__)

MutateFn = Callable[[KubeObject], None]


class OperationResult(str, Enum):
    """Outcome of ``Client.create_or_update``"""
    NONE = "unchanged"
    CREATED = "created"
    UPDATED = "updated"

    def __str__(self) -> str:
        return self.value


class Client:
    """Store access for reconcilers"""

    def __init__(self, store: ResourceStore, max_conflict_retries: int = 5):
        """
        Initialize the client

        Args:
            store: Backing Resource Store
            max_conflict_retries: Attempts per mutation before a conflict is raised
        """
        self.store = store
        self.max_conflict_retries = max_conflict_retries

    def get(self, kind: Kind, name: str, namespace: str = "") -> KubeObject:
        return self.store.get(kind, name, namespace)

    def get_optional(self, kind: Kind, name: str, namespace: str = "") -> Optional[KubeObject]:
        """Fetch an object, returning None when it does not exist"""
        try:
            return self.store.get(kind, name, namespace)
        except NotFoundError:
            return None

    def list(self, kind: Kind, namespace: Optional[str] = None) -> List[KubeObject]:
        return self.store.list(kind, namespace)

    def create(self, obj: KubeObject) -> KubeObject:
        return self.store.create(obj)

    def update(self, obj: KubeObject) -> KubeObject:
        return self.store.update(obj)

    def update_status(self, obj: KubeObject) -> KubeObject:
        return self.store.update_status(obj)

    def delete(self, obj: KubeObject) -> None:
        self.store.delete(obj.KIND, obj.metadata.name, obj.metadata.namespace)

    def watch(self, kind: Kind, namespace: Optional[str] = None) -> Watcher:
        return self.store.watch(kind, namespace)

    def mutate(self, obj: KubeObject, fn: MutateFn, status: bool = False) -> KubeObject:
        """
        Apply ``fn`` to ``obj`` and persist the result.

        Nothing is written when ``fn`` leaves the object unchanged. On a
        conflict the latest version is fetched and ``fn`` is applied again.
        ``obj`` is updated in place with the persisted state.

        Args:
            obj: Object to mutate (a fresh read from the store)
            fn: Mutation applied in place; must be safe to apply repeatedly
            status: Persist through the status subresource instead of the main object

        Returns:
            The persisted object

        Raises:
            ConflictError: If every attempt hit a conflict
        """
        current = obj
        for attempt in range(1, self.max_conflict_retries + 1):
            before = current.to_dict()
            desired = current.deepcopy()
            fn(desired)
            if desired.to_dict() == before:
                logger.debug(f"{current.key()} is up to date, skipping write")
                result = current
                break

            try:
                result = self.store.update_status(desired) if status else self.store.update(desired)
                break
            except ConflictError:
                if attempt == self.max_conflict_retries:
                    raise
                logger.debug(f"Conflict writing {current.key()} (attempt {attempt}), re-fetching")
                current = self.store.get(current.KIND, current.metadata.name, current.metadata.namespace)

        _copy_into(obj, result)
        return obj

    def create_or_update(self, desired: KubeObject, fn: MutateFn) -> Tuple[KubeObject, OperationResult]:
        """
        Ensure an object exists in the state produced by ``fn``.

        ``fn`` is applied to the existing object (or to ``desired`` when the
        object is missing) and must set every field the caller owns.

        Args:
            desired: Object carrying at least kind, name and namespace
            fn: Mutation producing the desired state

        Returns:
            Tuple of (persisted object, operation result)
        """
        existing = self.get_optional(desired.KIND, desired.metadata.name, desired.metadata.namespace)
        if existing is None:
            fn(desired)
            created = self.store.create(desired)
            logger.info(f"Created {created.key()}")
            return created, OperationResult.CREATED

        version = existing.metadata.resource_version
        result = self.mutate(existing, fn)
        if result.metadata.resource_version == version:
            return result, OperationResult.NONE
        logger.info(f"Updated {result.key()}")
        return result, OperationResult.UPDATED


def _copy_into(target: KubeObject, source: KubeObject) -> None:
    for f in fields(target):
        setattr(target, f.name, getattr(source, f.name))
