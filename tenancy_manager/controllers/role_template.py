"""
Role Template Fan-out

Common reconciliation of OrganizationRoleTemplates and ProjectRoleTemplates:
one Role + RoleBinding pair per ready target tenant and an exact audit of
the targets in the template's status.
"""

import logging
from abc import abstractmethod
from typing import List, Set

from ..core.constants import Kind, KubernetesConstants
from ..core.models import KubeObject, RoleTemplateTarget, Tenant
from ..namespaces.lifecycle import namespace_name_for
from .base import BaseReconciler
from .index import ReverseIndex
from .rbac import binding_subjects, delete_stale, reconcile_role, reconcile_role_binding

logger = logging.getLogger(__name__)


def target_namespace(tenant: Tenant) -> str:
    if tenant.status.namespace is not None and tenant.status.namespace.name:
        return tenant.status.namespace.name
    return namespace_name_for(tenant)


def audit_entry(tenant: Tenant) -> RoleTemplateTarget:
    return RoleTemplateTarget(
        kind=tenant.KIND.value,
        api_group=KubernetesConstants.TENANCY_API_GROUP,
        name=tenant.name,
        observed_generation=tenant.status.observed_generation,
    )


class RoleTemplateReconciler(BaseReconciler):
    """Base of the controllers materializing a template into tenant namespaces"""

    OWNED_KINDS = [Kind.ROLE, Kind.ROLE_BINDING]

    def __init__(self, client, index: ReverseIndex):
        super().__init__(client)
        self.index = index

    @abstractmethod
    def targets(self, obj: KubeObject) -> List[Tenant]:
        """Ready tenants the template currently applies to"""

    def reconcile_dependents(self, obj: KubeObject) -> None:
        targets = self.targets(obj)
        role_namespaces: Set[str] = set()
        binding_namespaces: Set[str] = set()
        audit: List[RoleTemplateTarget] = []

        for tenant in targets:
            namespace = target_namespace(tenant)
            reconcile_role(self.client, obj, namespace, obj.spec.rules)
            role_namespaces.add(namespace)

            subjects = binding_subjects(tenant, obj.spec.bind_to)
            if subjects is not None:
                reconcile_role_binding(self.client, obj, namespace, subjects)
                binding_namespaces.add(namespace)

            audit.append(audit_entry(tenant))

        delete_stale(self.client, obj, Kind.ROLE_BINDING, binding_namespaces)
        delete_stale(self.client, obj, Kind.ROLE, role_namespaces)

        def update_status(o: KubeObject) -> None:
            o.status.targets = list(audit)

        self.client.mutate(obj, update_status, status=True)
        logger.debug(f"{obj.key()} applies to {len(audit)} targets")
