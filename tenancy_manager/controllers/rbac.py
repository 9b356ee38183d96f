"""
RBAC Materialization

Writes the Roles and RoleBindings derived from role templates and
OrganizationRoles into tenant namespaces, and removes the ones that no
longer have a target.
"""

import copy
import logging
from typing import Iterable, List, Optional

from ..core.constants import Kind, KubernetesConstants, TenancyConstants
from ..core.exceptions import NotFoundError
from ..core.models import (
    KubeObject, ObjectMeta, PolicyRule, Role, RoleBinding, RoleRef, Subject, Tenant, is_owned_by,
    set_controller_reference
)
from ..membership.resolver import merge_subjects, sort_and_dedup
from ..store.client import Client

logger = logging.getLogger(__name__)


def binding_subjects(tenant: Tenant, bind_to: Iterable[str]) -> Optional[List[Subject]]:
    """
    Subjects a template binds in the tenant's namespace

    Args:
        tenant: Target Organization or Project
        bind_to: BindTo values of the template

    Returns:
        Sorted subjects, or None when the template binds nobody
    """
    bind_to = list(bind_to)
    if TenancyConstants.BindTo.EVERYONE.value in bind_to:
        return sort_and_dedup(merge_subjects(tenant.owners, tenant.members))
    if TenancyConstants.BindTo.OWNERS.value in bind_to:
        return sort_and_dedup(tenant.owners)
    return None


def _mark_managed(obj: KubeObject, owner: KubeObject) -> None:
    set_controller_reference(obj, owner)
    obj.metadata.labels[KubernetesConstants.MANAGED_BY_LABEL] = KubernetesConstants.MANAGER_COMPONENT


def reconcile_role(client: Client, owner: KubeObject, namespace: str, rules: List[PolicyRule]) -> Role:
    """Create or update the Role named after ``owner`` in ``namespace``"""
    desired = Role(metadata=ObjectMeta(name=owner.name, namespace=namespace))

    def mutate(role: KubeObject) -> None:
        _mark_managed(role, owner)
        role.rules = copy.deepcopy(rules)

    role, result = client.create_or_update(desired, mutate)
    logger.debug(f"{role.key()} for {owner.key()}: {result}")
    return role


def reconcile_role_binding(client: Client, owner: KubeObject, namespace: str,
                           subjects: List[Subject]) -> RoleBinding:
    """Create or update the RoleBinding granting ``owner``'s Role to ``subjects``"""
    desired = RoleBinding(metadata=ObjectMeta(name=owner.name, namespace=namespace))

    def mutate(binding: KubeObject) -> None:
        _mark_managed(binding, owner)
        binding.subjects = list(subjects)
        binding.role_ref = RoleRef(name=owner.name)

    binding, result = client.create_or_update(desired, mutate)
    logger.debug(f"{binding.key()} for {owner.key()}: {result}")
    return binding


def delete_stale(client: Client, owner: KubeObject, kind: Kind, keep_namespaces: Iterable[str]) -> int:
    """
    Delete objects of ``kind`` owned by ``owner`` outside ``keep_namespaces``

    Returns:
        int: Number of delete requests issued
    """
    keep = set(keep_namespaces)
    deleted = 0
    for obj in client.list(kind):
        if obj.namespace in keep or obj.is_deleting or not is_owned_by(obj, owner):
            continue
        try:
            client.delete(obj)
            deleted += 1
            logger.info(f"Deleted stale {obj.key()} of {owner.key()}")
        except NotFoundError:
            pass
    return deleted
