"""
OrganizationRoleTemplate Controller

Materializes a cluster-wide template into every ready Organization and/or
Project namespace, depending on the template's scopes.
"""

from typing import List

from ..core.constants import Kind, TenancyConstants
from ..core.models import KubeObject, OrganizationRoleTemplate, Tenant, is_ready
from .base import Request, WatchSpec, owner_mapper
from .role_template import RoleTemplateReconciler

Scope = TenancyConstants.RoleTemplateScope


class OrganizationRoleTemplateReconciler(RoleTemplateReconciler):
    """Control loop of OrganizationRoleTemplates"""

    KIND = Kind.ORGANIZATION_ROLE_TEMPLATE
    FINALIZER = TenancyConstants.Finalizer.ORGANIZATION_ROLE_TEMPLATE.value

    def watches(self) -> List[WatchSpec]:
        def every_template(_: KubeObject) -> List[Request]:
            return self.index.requests(Kind.ORGANIZATION_ROLE_TEMPLATE)

        return [
            WatchSpec(self.KIND),
            WatchSpec(Kind.ORGANIZATION, every_template),
            WatchSpec(Kind.PROJECT, every_template),
            WatchSpec(Kind.ROLE, owner_mapper(Kind.ORGANIZATION_ROLE_TEMPLATE)),
            WatchSpec(Kind.ROLE_BINDING, owner_mapper(Kind.ORGANIZATION_ROLE_TEMPLATE)),
        ]

    def targets(self, obj: KubeObject) -> List[Tenant]:
        template: OrganizationRoleTemplate = obj
        tenants: List[Tenant] = []
        if template.has_scope(Scope.ORGANIZATION):
            tenants.extend(o for o in self.client.list(Kind.ORGANIZATION) if is_ready(o))
        if template.has_scope(Scope.PROJECT):
            tenants.extend(p for p in self.client.list(Kind.PROJECT) if is_ready(p))
        return tenants
