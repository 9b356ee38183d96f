"""
Manager Libraries

The kopf operator runtime running the control loops.
"""

from .runtime import Operator, connection_info, create_operator, resource_selector

__all__ = [
    'Operator',
    'connection_info',
    'create_operator',
    'resource_selector',
]
