"""
API Server Libraries

Visibility filter and REST storage for tenant kinds.
"""

from .identity import UserInfo
from .ownership import check_membership, check_ownership, contains_user, is_member
from .rest import TenantREST
from .watch import FilteredWatch

__all__ = [
    'UserInfo',
    'check_membership',
    'check_ownership',
    'contains_user',
    'is_member',
    'TenantREST',
    'FilteredWatch',
]
