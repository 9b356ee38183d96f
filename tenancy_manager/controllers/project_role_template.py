"""
ProjectRoleTemplate Controller

Materializes an Organization-scoped template into the namespaces of the
ready Projects its selector matches.
"""

from typing import List

from ..core.constants import Kind, TenancyConstants
from ..core.models import KubeObject, ProjectRoleTemplate, Tenant, is_ready, selector_matches
from ..namespaces.lifecycle import decode_project_namespace
from .base import Request, WatchSpec
from .role_template import RoleTemplateReconciler


def _targets_project(template: ProjectRoleTemplate, project: KubeObject) -> bool:
    """Whether the template selects the project now or listed it before"""
    if selector_matches(template.spec.project_selector, project.metadata.labels):
        return True
    return any(target.kind == Kind.PROJECT.value and target.name == project.name
               for target in template.status.targets)


def _template_for_rbac_object(obj: KubeObject) -> List[Request]:
    """Map a Role/RoleBinding in a project namespace back to its template"""
    try:
        organization_namespace, _ = decode_project_namespace(obj.namespace)
    except ValueError:
        return []
    return [
        Request(Kind.PROJECT_ROLE_TEMPLATE, ref.name, organization_namespace)
        for ref in obj.metadata.owner_references
        if ref.kind == Kind.PROJECT_ROLE_TEMPLATE.value
    ]


class ProjectRoleTemplateReconciler(RoleTemplateReconciler):
    """Control loop of ProjectRoleTemplates"""

    KIND = Kind.PROJECT_ROLE_TEMPLATE
    FINALIZER = TenancyConstants.Finalizer.PROJECT_ROLE_TEMPLATE.value

    def watches(self) -> List[WatchSpec]:
        def matching_templates(project: KubeObject) -> List[Request]:
            return self.index.requests(
                Kind.PROJECT_ROLE_TEMPLATE,
                namespace=project.namespace,
                predicate=lambda template: _targets_project(template, project),
            )

        return [
            WatchSpec(self.KIND),
            WatchSpec(Kind.PROJECT, matching_templates),
            WatchSpec(Kind.ROLE, _template_for_rbac_object),
            WatchSpec(Kind.ROLE_BINDING, _template_for_rbac_object),
        ]

    def targets(self, obj: KubeObject) -> List[Tenant]:
        template: ProjectRoleTemplate = obj
        return [
            project for project in self.client.list(Kind.PROJECT, template.namespace)
            if is_ready(project) and selector_matches(template.spec.project_selector, project.metadata.labels)
        ]
