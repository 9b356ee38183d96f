"""
Project Controller

Provisions the Project's namespace inside its Organization and aggregates
the Project's members.
"""

import logging
from typing import List

from ..core.constants import Kind, TenancyConstants
from ..core.models import KubeObject, ObjectReference, Project
from ..membership.resolver import merge_subjects, resolve_members
from ..namespaces.lifecycle import decode_project_namespace, reconcile_namespace
from .base import BaseReconciler, Request, WatchSpec

logger = logging.getLogger(__name__)


def _project_for_namespaced_object(obj: KubeObject) -> List[Request]:
    """Map an object living in a project namespace to that Project"""
    namespace = obj.namespace if obj.KIND.namespaced else obj.name
    try:
        organization_namespace, project_name = decode_project_namespace(namespace)
    except ValueError:
        return []
    return [Request(Kind.PROJECT, project_name, organization_namespace)]


class ProjectReconciler(BaseReconciler):
    """Control loop of Projects"""

    KIND = Kind.PROJECT
    FINALIZER = TenancyConstants.Finalizer.PROJECT.value
    OWNED_KINDS = [Kind.NAMESPACE]

    def watches(self) -> List[WatchSpec]:
        return [
            WatchSpec(self.KIND),
            WatchSpec(Kind.NAMESPACE, _project_for_namespaced_object),
            WatchSpec(Kind.ROLE_BINDING, _project_for_namespaced_object),
        ]

    def reconcile_dependents(self, obj: KubeObject) -> None:
        project: Project = obj
        namespace = reconcile_namespace(self.client, project)

        members = merge_subjects(project.owners, resolve_members(self.client, namespace.name))

        def update_status(o: KubeObject) -> None:
            o.status.namespace = ObjectReference(name=namespace.name)
            o.status.members = members

        self.client.mutate(project, update_status, status=True)
