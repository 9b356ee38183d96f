"""
Namespace Lifecycle

Deterministic tenant namespace naming, namespace provisioning and ordered
teardown of everything a tenant or template owns.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from ..core.constants import Kind, KubernetesConstants, TenancyConstants
from ..core.exceptions import NotFoundError
from ..core.models import (
    KubeObject, Namespace, ObjectMeta, Organization, Project, Tenant, set_controller_reference
)
from ..store.client import Client

logger = logging.getLogger(__name__)

SEPARATOR = TenancyConstants.PROJECT_NAMESPACE_SEPARATOR


def project_namespace_name(organization_namespace: str, project_name: str) -> str:
    return f"{organization_namespace}{SEPARATOR}{project_name}"


def decode_project_namespace(name: str) -> Tuple[str, str]:
    """
    Split a project namespace name into its parts

    Args:
        name: Namespace name

    Returns:
        Tuple of (organization namespace, project name)

    Raises:
        ValueError: If the separator does not occur exactly once
    """
    parts = name.split(SEPARATOR)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValueError(f"not a valid project namespace name to decode: {name}")
    return parts[0], parts[1]


def namespace_name_for(tenant: Tenant) -> str:
    """Name of the namespace a tenant owns"""
    if isinstance(tenant, Organization):
        return tenant.name
    if isinstance(tenant, Project):
        return project_namespace_name(tenant.namespace, tenant.name)
    raise TypeError(f"{type(tenant).__name__} does not own a namespace")


def reconcile_namespace(client: Client, tenant: Tenant) -> Namespace:
    """
    Create or adopt the tenant's namespace.

    The namespace gets a controller owner reference to the tenant. Nothing is
    written when the namespace is already in that state.

    Raises:
        ConflictError: If the namespace is controlled by a different object
    """
    desired = Namespace(metadata=ObjectMeta(name=namespace_name_for(tenant)))

    def mutate(namespace: KubeObject) -> None:
        set_controller_reference(namespace, tenant)
        namespace.metadata.labels[KubernetesConstants.MANAGED_BY_LABEL] = KubernetesConstants.MANAGER_COMPONENT

    namespace, result = client.create_or_update(desired, mutate)
    logger.debug(f"Namespace {namespace.name} for {tenant.key()}: {result}")
    return namespace


def _parent_uid(obj: KubeObject) -> Optional[str]:
    refs = obj.metadata.owner_references
    for ref in refs:
        if ref.controller:
            return ref.uid
    return refs[0].uid if refs else None


class OwnershipForest:
    """
    Explicit ownership graph over a set of objects.

    Each object has at most one parent: its controlling owner, or its first
    owner reference when none is marked as controller.
    """

    def __init__(self, objects: Iterable[KubeObject]):
        self._children: Dict[str, List[KubeObject]] = defaultdict(list)
        for obj in objects:
            parent = _parent_uid(obj)
            if parent:
                self._children[parent].append(obj)

    def children(self, uid: str) -> List[KubeObject]:
        return list(self._children.get(uid, []))

    def descendants(self, uid: str) -> List[KubeObject]:
        """Every object transitively owned by ``uid``, children before parents"""
        ordered: List[KubeObject] = []
        visited = set()

        def visit(parent_uid: str) -> None:
            for child in self._children.get(parent_uid, []):
                child_uid = child.metadata.uid
                if child_uid in visited:
                    continue
                visited.add(child_uid)
                visit(child_uid)
                ordered.append(child)

        visit(uid)
        return ordered


def teardown_owned_objects(client: Client, owner: KubeObject, kinds: Iterable[Kind]) -> bool:
    """
    Delete everything ``owner`` transitively owns among the given kinds

    Args:
        client: Store client
        owner: Object being torn down
        kinds: Kinds to search for owned objects

    Returns:
        bool: True only when no owned object was found, i.e. the owner's
        finalizer may be removed
    """
    objects: List[KubeObject] = []
    for kind in kinds:
        objects.extend(client.list(kind))

    owned = OwnershipForest(objects).descendants(owner.metadata.uid)
    if not owned:
        logger.debug(f"Nothing left to clean up for {owner.key()}")
        return True

    for obj in owned:
        if obj.is_deleting:
            continue
        try:
            client.delete(obj)
            logger.info(f"Deleting {obj.key()} owned by {owner.key()}")
        except NotFoundError:
            pass
    return False
