"""
Ownership and Membership Checks

Decides whether a caller may see or modify a tenant. Non-members get
NotFound so the existence of a tenant is never confirmed to outsiders;
members lacking ownership get Forbidden.
"""

import logging
from typing import Iterable, Optional

from ..core.constants import ErrorMessages, SubjectKind
from ..core.exceptions import ForbiddenError, InternalError, NotFoundError
from ..core.models import Subject, Tenant
from .identity import UserInfo, service_account_username

logger = logging.getLogger(__name__)


def contains_user(user: Optional[UserInfo], subjects: Iterable[Subject]) -> bool:
    """
    Check whether the caller matches any of the subjects

    Args:
        user: Caller identity; None when delegated authentication is disabled
        subjects: Subjects to match against

    Returns:
        bool: True if a subject matches the caller

    Raises:
        InternalError: If a subject has an unknown kind
    """
    if user is None:
        logger.warning("Unknown user, the API may be running with delegated authentication disabled")
        return True

    for subject in subjects:
        if subject.kind == SubjectKind.USER:
            if subject.name == user.identity:
                return True
        elif subject.kind == SubjectKind.GROUP:
            if subject.name in user.groups:
                return True
        elif subject.kind == SubjectKind.SERVICE_ACCOUNT:
            if service_account_username(subject.namespace, subject.name) == user.identity:
                return True
        else:
            raise InternalError(ErrorMessages.AdmissionError.UNKNOWN_SUBJECT_KIND.format(kind=subject.kind))
    return False


def is_member(user: Optional[UserInfo], tenant: Tenant) -> bool:
    """
    Check whether the caller is an owner or a member of the tenant.

    Owners are included so a tenant is visible to its creator before the
    controller has written its members.
    """
    return contains_user(user, list(tenant.owners) + list(tenant.members))


def is_owner(user: Optional[UserInfo], tenant: Tenant) -> bool:
    return contains_user(user, tenant.owners)


def check_membership(user: Optional[UserInfo], tenant: Tenant) -> None:
    """
    Raises:
        NotFoundError: If the caller is not a member
    """
    if not is_member(user, tenant):
        raise NotFoundError(tenant.KIND.value, tenant.name)


def check_ownership(user: Optional[UserInfo], tenant: Tenant, verb: str) -> None:
    """
    Require the caller to own the tenant

    Args:
        user: Caller identity
        tenant: Tenant being modified
        verb: Operation, used in the error message

    Raises:
        NotFoundError: If the caller is not even a member
        ForbiddenError: If the caller is a member but not an owner
    """
    check_membership(user, tenant)
    if not is_owner(user, tenant):
        raise ForbiddenError(tenant.KIND.value, tenant.name,
                             ErrorMessages.AdmissionError.OWNERSHIP_REQUIRED.format(verb=verb))
