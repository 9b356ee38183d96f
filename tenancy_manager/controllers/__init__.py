"""
Controllers

The five control loops of the tenancy manager and their shared machinery.
"""

from typing import List

from ..core.constants import Kind
from ..store.client import Client
from .base import BaseReconciler, Request, WatchSpec, owner_mapper
from .defaults import default_templates, ensure_default_templates
from .index import ReverseIndex
from .organization import OrganizationReconciler
from .organization_role import OrganizationRoleReconciler
from .organization_role_template import OrganizationRoleTemplateReconciler
from .project import ProjectReconciler
from .project_role_template import ProjectRoleTemplateReconciler

# Kinds secondary watches fan out to through the reverse index
INDEXED_KINDS = [Kind.ORGANIZATION_ROLE, Kind.ORGANIZATION_ROLE_TEMPLATE, Kind.PROJECT_ROLE_TEMPLATE]


def create_controllers(client: Client, index: ReverseIndex) -> List[BaseReconciler]:
    """Build every controller sharing one client and one reverse index"""
    return [
        OrganizationReconciler(client),
        ProjectReconciler(client),
        OrganizationRoleReconciler(client, index),
        OrganizationRoleTemplateReconciler(client, index),
        ProjectRoleTemplateReconciler(client, index),
    ]


__all__ = [
    'BaseReconciler',
    'Request',
    'WatchSpec',
    'owner_mapper',
    'default_templates',
    'ensure_default_templates',
    'ReverseIndex',
    'OrganizationReconciler',
    'OrganizationRoleReconciler',
    'OrganizationRoleTemplateReconciler',
    'ProjectReconciler',
    'ProjectRoleTemplateReconciler',
    'INDEXED_KINDS',
    'create_controllers',
]
