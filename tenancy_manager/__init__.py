"""
Tenancy Manager

Multi-tenancy control plane for Kubernetes: Organizations and Projects backed
by isolated namespaces, owner-controlled membership, and permission templates
clamped to an administrator-defined ceiling.
"""

__version__ = "0.1.0"
