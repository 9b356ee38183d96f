"""
Organization Controller

Provisions the Organization's namespace, aggregates its members and makes
sure the default role templates exist.
"""

import logging
from typing import List

from ..core.constants import Kind, TenancyConstants
from ..core.models import KubeObject, ObjectReference, Organization
from ..membership.resolver import merge_subjects, resolve_members
from ..namespaces.lifecycle import decode_project_namespace, reconcile_namespace
from .base import BaseReconciler, Request, WatchSpec, owner_mapper
from .defaults import ensure_default_templates

logger = logging.getLogger(__name__)


def _is_project_namespace(name: str) -> bool:
    try:
        decode_project_namespace(name)
    except ValueError:
        return False
    return True


def _organization_for_role_binding(obj: KubeObject) -> List[Request]:
    # Project namespaces are handled by the Project controller; the
    # Organization hears about them through the Project's status.
    if _is_project_namespace(obj.namespace):
        return []
    return [Request(Kind.ORGANIZATION, obj.namespace)]


def _organization_for_project(obj: KubeObject) -> List[Request]:
    return [Request(Kind.ORGANIZATION, obj.namespace)]


class OrganizationReconciler(BaseReconciler):
    """Control loop of Organizations"""

    KIND = Kind.ORGANIZATION
    FINALIZER = TenancyConstants.Finalizer.ORGANIZATION.value
    OWNED_KINDS = [Kind.NAMESPACE]

    def watches(self) -> List[WatchSpec]:
        return [
            WatchSpec(self.KIND),
            WatchSpec(Kind.NAMESPACE, owner_mapper(Kind.ORGANIZATION)),
            WatchSpec(Kind.ROLE_BINDING, _organization_for_role_binding),
            WatchSpec(Kind.PROJECT, _organization_for_project),
        ]

    def reconcile_dependents(self, obj: KubeObject) -> None:
        organization: Organization = obj
        namespace = reconcile_namespace(self.client, organization)

        members = merge_subjects(
            organization.owners,
            resolve_members(self.client, namespace.name, include_projects=True),
        )

        def update_status(o: KubeObject) -> None:
            o.status.namespace = ObjectReference(name=namespace.name)
            o.status.members = members

        self.client.mutate(organization, update_status, status=True)

        ensure_default_templates(self.client)
