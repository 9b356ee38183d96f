"""
Tenant REST Storage

API-facing storage for Organizations and Projects. Every call passes the
caller identity through the visibility filter before touching the store.
"""

import logging
from typing import List, Optional

from ..core.constants import ErrorMessages, Kind
from ..core.exceptions import BadRequestError, ConfigurationError
from ..core.models import MODEL_BY_KIND, Tenant
from ..core.utils import validate_name
from ..store.base import ResourceStore
from .identity import UserInfo
from .ownership import check_membership, check_ownership, contains_user, is_member
from .watch import FilteredWatch

logger = logging.getLogger(__name__)


class TenantREST:
    """REST verbs of one tenant kind, gated by ownership and membership"""

    def __init__(self, store: ResourceStore, kind: Kind):
        """
        Initialize the REST storage

        Args:
            store: Backing Resource Store
            kind: Kind.ORGANIZATION or Kind.PROJECT
        """
        if kind not in Kind.get_tenant_kinds():
            raise ValueError(f"{kind.value} is not a tenant kind")
        self.store = store
        self.kind = kind
        self.model = MODEL_BY_KIND[kind]

    @property
    def namespace_scoped(self) -> bool:
        return self.kind.namespaced

    def get(self, user: Optional[UserInfo], name: str, namespace: str = "") -> Tenant:
        """
        Raises:
            NotFoundError: If the tenant is missing or invisible to the caller
        """
        tenant = self.store.get(self.kind, name, namespace)
        check_membership(user, tenant)
        return tenant

    def list(self, user: Optional[UserInfo], namespace: Optional[str] = None) -> List[Tenant]:
        """List tenants, silently dropping the ones the caller may not see"""
        return [tenant for tenant in self.store.list(self.kind, namespace) if is_member(user, tenant)]

    def create(self, user: Optional[UserInfo], tenant: Tenant) -> Tenant:
        """
        Create a tenant. The caller must list themselves among the owners.

        Raises:
            BadRequestError: If the name is not a valid tenant name or the
                caller is not an owner of the new tenant
        """
        try:
            validate_name(tenant.name)
        except ConfigurationError as e:
            raise BadRequestError(str(e))
        if not contains_user(user, tenant.owners):
            raise BadRequestError(ErrorMessages.AdmissionError.NOT_OWNER_ON_CREATE.format(kind=self.kind.value.lower()))
        created = self.store.create(tenant)
        logger.info(f"{user.identity if user else 'unknown user'} created {created.key()}")
        return created

    def update(self, user: Optional[UserInfo], tenant: Tenant) -> Tenant:
        """
        Update a tenant owned by the caller.

        The resource version of ``tenant`` is passed through, so a stale
        version fails with ConflictError.

        Raises:
            NotFoundError: If the caller is not a member
            ForbiddenError: If the caller is a member but not an owner
        """
        current = self.get(user, tenant.name, tenant.namespace)
        check_ownership(user, current, "update")
        return self.store.update(tenant)

    def delete(self, user: Optional[UserInfo], name: str, namespace: str = "") -> Tenant:
        """
        Request deletion of a tenant owned by the caller

        Returns:
            The tenant as it was before the deletion request
        """
        current = self.get(user, name, namespace)
        check_ownership(user, current, "delete")
        self.store.delete(self.kind, name, namespace)
        logger.info(f"{user.identity if user else 'unknown user'} deleted {current.key()}")
        return current

    def delete_collection(self, user: Optional[UserInfo], namespace: Optional[str] = None) -> List[Tenant]:
        """
        Delete every tenant visible to the caller.

        Ownership is checked for all of them first; if any check fails
        nothing is deleted.
        """
        tenants = self.list(user, namespace)
        for tenant in tenants:
            check_ownership(user, tenant, "deletecollection")
        for tenant in tenants:
            self.store.delete(self.kind, tenant.name, tenant.namespace)
        return tenants

    def watch(self, user: Optional[UserInfo], namespace: Optional[str] = None) -> FilteredWatch:
        """Watch tenants; visibility is re-evaluated for every event"""
        upstream = self.store.watch(self.kind, namespace)
        return FilteredWatch(upstream, self.model, lambda tenant: is_member(user, tenant))
