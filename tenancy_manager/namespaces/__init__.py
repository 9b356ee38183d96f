"""
Namespace Libraries

Tenant namespace naming, provisioning and teardown.
"""

from .lifecycle import (
    OwnershipForest, decode_project_namespace, namespace_name_for, project_namespace_name,
    reconcile_namespace, teardown_owned_objects
)

__all__ = [
    'OwnershipForest',
    'decode_project_namespace',
    'namespace_name_for',
    'project_namespace_name',
    'reconcile_namespace',
    'teardown_owned_objects',
]
