"""
Policy Libraries

RBAC policy rule intersection used to clamp requested permissions.
"""

from .intersect import clamp, intersect_rule

__all__ = [
    'clamp',
    'intersect_rule',
]
