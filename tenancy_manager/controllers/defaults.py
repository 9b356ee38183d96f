"""
Default Role Templates

Cluster-wide OrganizationRoleTemplates every Organization owner receives.
They are created once, lazily, by the Organization controller and are left
alone afterwards so administrators can tailor them.
"""

import logging
from typing import List

from ..core.constants import Kind, KubernetesConstants, TenancyConstants
from ..core.exceptions import AlreadyExistsError
from ..core.models import (
    DisplayMetadata, ObjectMeta, OrganizationRoleTemplate, OrganizationRoleTemplateSpec, PolicyRule
)
from ..store.client import Client

logger = logging.getLogger(__name__)

Verb = KubernetesConstants.RBACVerb


def default_templates() -> List[OrganizationRoleTemplate]:
    """Build the default templates bound to Organization owners"""
    scopes = [TenancyConstants.RoleTemplateScope.ORGANIZATION.value]
    bind_to = [TenancyConstants.BindTo.OWNERS.value]

    project_admin = OrganizationRoleTemplate(
        metadata=ObjectMeta(name=TenancyConstants.PROJECT_ADMIN_TEMPLATE_NAME),
        spec=OrganizationRoleTemplateSpec(
            scopes=list(scopes),
            bind_to=list(bind_to),
            rules=[PolicyRule(
                api_groups=[KubernetesConstants.APISERVER_API_GROUP],
                resources=["projects"],
                verbs=[Verb.WILDCARD.value],
            )],
            metadata=DisplayMetadata(
                display_name="Project Admin",
                description="Allows the management of Projects within an Organization.",
            ),
        ),
    )

    rbac_admin = OrganizationRoleTemplate(
        metadata=ObjectMeta(name=TenancyConstants.RBAC_ADMIN_TEMPLATE_NAME),
        spec=OrganizationRoleTemplateSpec(
            scopes=list(scopes),
            bind_to=list(bind_to),
            rules=[PolicyRule(
                api_groups=[KubernetesConstants.RBAC_API_GROUP],
                resources=["roles", "rolebindings"],
                verbs=[verb.value for verb in Verb.get_all_verbs()] + [Verb.BIND.value],
            )],
            metadata=DisplayMetadata(
                display_name="RBAC Admin",
                description="Allows the management of Roles and RoleBindings within an Organization.",
            ),
        ),
    )
    return [project_admin, rbac_admin]


def ensure_default_templates(client: Client) -> None:
    """
    Create the default templates that do not exist yet.

    Organizations reconciled in parallel may race to create the same
    template; losing that race is not an error.
    """
    for template in default_templates():
        if client.get_optional(Kind.ORGANIZATION_ROLE_TEMPLATE, template.name) is not None:
            continue
        try:
            client.create(template)
            logger.info(f"Created default {template.key()}")
        except AlreadyExistsError:
            logger.debug(f"Default {template.key()} was created concurrently")
