"""
Caller Identity

Opaque caller identity attached to every read/write/watch call.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ..core.constants import KubernetesConstants


def service_account_username(namespace: str, name: str) -> str:
    return f"{KubernetesConstants.SERVICE_ACCOUNT_USER_PREFIX}{namespace}:{name}"


@dataclass(frozen=True)
class UserInfo:
    """Authenticated caller as reported by the request layer"""
    username: str
    groups: List[str] = field(default_factory=list)
    service_account_namespace: Optional[str] = None
    service_account_name: Optional[str] = None

    @property
    def identity(self) -> str:
        """
        Name the caller is matched by.

        Service accounts are identified as
        ``system:serviceaccount:<namespace>:<name>``.
        """
        if self.service_account_namespace and self.service_account_name:
            return service_account_username(self.service_account_namespace, self.service_account_name)
        return self.username

    @classmethod
    def for_service_account(cls, namespace: str, name: str, groups: Optional[List[str]] = None) -> 'UserInfo':
        return cls(
            username=service_account_username(namespace, name),
            groups=list(groups or []),
            service_account_namespace=namespace,
            service_account_name=name,
        )
