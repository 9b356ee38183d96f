"""
OrganizationRole Controller

Clamps the rules an Organization owner requests to the ceiling formed by
every ready OrganizationRoleTemplate and materializes the accepted rules as
a Role in the Organization's namespace.
"""

import copy
import logging
from typing import List

from ..core.constants import ConditionConstants, Kind, TenancyConstants
from ..core.exceptions import OwnershipConflictError
from ..core.models import Condition, KubeObject, OrganizationRole, PolicyRule, is_ready
from ..policy.intersect import clamp
from .base import BaseReconciler, WatchSpec, owner_mapper
from .index import ReverseIndex
from .rbac import reconcile_role

logger = logging.getLogger(__name__)


class OrganizationRoleReconciler(BaseReconciler):
    """Control loop of OrganizationRoles"""

    KIND = Kind.ORGANIZATION_ROLE
    FINALIZER = TenancyConstants.Finalizer.ORGANIZATION_ROLE.value
    OWNED_KINDS = [Kind.ROLE]

    def __init__(self, client, index: ReverseIndex):
        super().__init__(client)
        self.index = index

    def watches(self) -> List[WatchSpec]:
        return [
            WatchSpec(self.KIND),
            WatchSpec(Kind.ORGANIZATION_ROLE_TEMPLATE,
                      lambda _: self.index.requests(Kind.ORGANIZATION_ROLE)),
            WatchSpec(Kind.ROLE, owner_mapper(Kind.ORGANIZATION_ROLE)),
        ]

    def ceiling(self) -> List[PolicyRule]:
        """Union of the rules of every ready OrganizationRoleTemplate"""
        rules: List[PolicyRule] = []
        for template in self.client.list(Kind.ORGANIZATION_ROLE_TEMPLATE):
            if is_ready(template):
                rules.extend(template.spec.rules)
        return rules

    def reconcile_dependents(self, obj: KubeObject) -> None:
        role: OrganizationRole = obj
        accepted = clamp(self.ceiling(), role.spec.rules)
        logger.debug(f"{role.key()}: accepted {len(accepted)} of the requested rules")

        def update_status(o: KubeObject) -> None:
            o.status.accepted_rules = copy.deepcopy(accepted)

        self.client.mutate(role, update_status, status=True)
        try:
            reconcile_role(self.client, role, role.namespace, accepted)
        except OwnershipConflictError as e:
            # A Role of the same name belongs to something else; never adopt it
            logger.warning(f"{role.key()} cannot materialize its Role: {e}")
            self.client.mutate(role, lambda o: self._set_role_conflict(o, str(e)), status=True)
            raise

    def _set_role_conflict(self, obj: KubeObject, message: str) -> None:
        obj.status.observed_generation = obj.metadata.generation
        obj.status.set_condition(Condition(
            type=ConditionConstants.READY,
            status=ConditionConstants.Status.FALSE.value,
            reason=ConditionConstants.ROLE_CONFLICT_REASON,
            message=message,
        ))
