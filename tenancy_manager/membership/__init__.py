"""
Membership Libraries

Member resolution for tenant namespaces.
"""

from .resolver import extract_subjects, is_template_binding, merge_subjects, resolve_members, sort_and_dedup

__all__ = [
    'extract_subjects',
    'is_template_binding',
    'merge_subjects',
    'resolve_members',
    'sort_and_dedup',
]
