"""
Constants Module

Centralized constants for the Tenancy Manager to eliminate magic strings
and keep API groups, kinds, finalizers and reasons in one place.
"""

from enum import Enum
from typing import Dict, NamedTuple


class KubernetesConstants:
    """Kubernetes-related constants"""

    # API Group constants
    TENANCY_API_GROUP = "tenancy.io"
    TENANCY_API_VERSION = "v1alpha1"
    APISERVER_API_GROUP = "apiserver.tenancy.io"
    RBAC_API_GROUP = "rbac.authorization.k8s.io"
    RBAC_API_VERSION = "v1"
    CORE_API_GROUP = ""  # Core API group (empty string)

    # Wildcards reserved by Kubernetes RBAC
    VERB_ALL = "*"
    API_GROUP_ALL = "*"
    RESOURCE_ALL = "*"
    NON_RESOURCE_ALL = "*"

    # Label constants
    MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
    MANAGER_COMPONENT = "tenancy-manager"

    # Service account user name prefix used by the authenticator
    SERVICE_ACCOUNT_USER_PREFIX = "system:serviceaccount:"

    class RBACVerb(str, Enum):
        """RBAC verbs used in generated role definitions"""
        CREATE = "create"
        GET = "get"
        LIST = "list"
        WATCH = "watch"
        UPDATE = "update"
        PATCH = "patch"
        DELETE = "delete"
        BIND = "bind"
        WILDCARD = "*"

        def __str__(self) -> str:
            return self.value

        @classmethod
        def get_read_verbs(cls) -> list:
            """Get all read-only RBAC verbs"""
            return [cls.GET, cls.LIST, cls.WATCH]

        @classmethod
        def get_write_verbs(cls) -> list:
            """Get all write RBAC verbs"""
            return [cls.CREATE, cls.UPDATE, cls.PATCH, cls.DELETE]

        @classmethod
        def get_all_verbs(cls) -> list:
            """Get all RBAC verbs except wildcard and bind"""
            return cls.get_read_verbs() + cls.get_write_verbs()


class KindInfo(NamedTuple):
    """Static description of a kind the engine reads or writes"""
    api_group: str
    version: str
    plural: str
    namespaced: bool

    @property
    def api_version(self) -> str:
        if not self.api_group:
            return self.version
        return f"{self.api_group}/{self.version}"


class Kind(str, Enum):
    """Object kinds handled by the Resource Store"""
    ORGANIZATION = "Organization"
    PROJECT = "Project"
    ORGANIZATION_ROLE = "OrganizationRole"
    ORGANIZATION_ROLE_TEMPLATE = "OrganizationRoleTemplate"
    PROJECT_ROLE_TEMPLATE = "ProjectRoleTemplate"
    NAMESPACE = "Namespace"
    ROLE = "Role"
    ROLE_BINDING = "RoleBinding"

    def __str__(self) -> str:
        return self.value

    @property
    def info(self) -> KindInfo:
        return KIND_INFO[self]

    @property
    def namespaced(self) -> bool:
        return KIND_INFO[self].namespaced

    @classmethod
    def get_tenant_kinds(cls) -> list:
        """Kinds that own a namespace and carry owners/members"""
        return [cls.ORGANIZATION, cls.PROJECT]

    @classmethod
    def get_template_kinds(cls) -> list:
        """Kinds whose RoleBindings are derived from tenant membership"""
        return [cls.ORGANIZATION_ROLE_TEMPLATE, cls.PROJECT_ROLE_TEMPLATE]

    @classmethod
    def get_custom_kinds(cls) -> list:
        """Kinds served from the tenancy API group"""
        return [
            cls.ORGANIZATION,
            cls.PROJECT,
            cls.ORGANIZATION_ROLE,
            cls.ORGANIZATION_ROLE_TEMPLATE,
            cls.PROJECT_ROLE_TEMPLATE,
        ]


KIND_INFO: Dict[Kind, KindInfo] = {
    Kind.ORGANIZATION: KindInfo(
        KubernetesConstants.TENANCY_API_GROUP, KubernetesConstants.TENANCY_API_VERSION, "organizations", False),
    Kind.PROJECT: KindInfo(
        KubernetesConstants.TENANCY_API_GROUP, KubernetesConstants.TENANCY_API_VERSION, "projects", True),
    Kind.ORGANIZATION_ROLE: KindInfo(
        KubernetesConstants.TENANCY_API_GROUP, KubernetesConstants.TENANCY_API_VERSION, "organizationroles", True),
    Kind.ORGANIZATION_ROLE_TEMPLATE: KindInfo(
        KubernetesConstants.TENANCY_API_GROUP, KubernetesConstants.TENANCY_API_VERSION,
        "organizationroletemplates", False),
    Kind.PROJECT_ROLE_TEMPLATE: KindInfo(
        KubernetesConstants.TENANCY_API_GROUP, KubernetesConstants.TENANCY_API_VERSION,
        "projectroletemplates", True),
    Kind.NAMESPACE: KindInfo(KubernetesConstants.CORE_API_GROUP, "v1", "namespaces", False),
    Kind.ROLE: KindInfo(KubernetesConstants.RBAC_API_GROUP, KubernetesConstants.RBAC_API_VERSION, "roles", True),
    Kind.ROLE_BINDING: KindInfo(
        KubernetesConstants.RBAC_API_GROUP, KubernetesConstants.RBAC_API_VERSION, "rolebindings", True),
}


class TenancyConstants:
    """Constants of the tenancy model itself"""

    # Reserved separator between the Organization namespace and the Project name.
    # Object names may not contain it.
    PROJECT_NAMESPACE_SEPARATOR = "-tenancy-"

    # Default OrganizationRoleTemplates created for every Organization
    PROJECT_ADMIN_TEMPLATE_NAME = "project-admin"
    RBAC_ADMIN_TEMPLATE_NAME = "rbac-admin"

    # Bookkeeping of the operator runtime (kopf) on primary objects
    OPERATOR_FINALIZER = "tenancy.io/operator"
    OPERATOR_ANNOTATION_PREFIX = "tenancy.io"

    class Finalizer(str, Enum):
        """Finalizers owned by the controllers"""
        ORGANIZATION = "organization.tenancy.io/controller"
        PROJECT = "project.tenancy.io/controller"
        ORGANIZATION_ROLE = "organizationrole.tenancy.io/controller"
        ORGANIZATION_ROLE_TEMPLATE = "organizationroletemplate.tenancy.io/controller"
        PROJECT_ROLE_TEMPLATE = "projectroletemplate.tenancy.io/controller"

        def __str__(self) -> str:
            return self.value

    class RoleTemplateScope(str, Enum):
        """Tenant tiers an OrganizationRoleTemplate can target"""
        ORGANIZATION = "Organization"
        PROJECT = "Project"

        def __str__(self) -> str:
            return self.value

    class BindTo(str, Enum):
        """Member types a role template is bound to"""
        OWNERS = "Owners"
        EVERYONE = "Everyone"

        def __str__(self) -> str:
            return self.value


class ConditionConstants:
    """Condition types, statuses and reasons shared by all kinds"""

    READY = "Ready"

    # Reasons
    SETUP_COMPLETE_REASON = "SetupComplete"
    TERMINATING_REASON = "Deleting"
    ROLE_CONFLICT_REASON = "RoleConflict"

    class Status(str, Enum):
        """Status values of a condition"""
        TRUE = "True"
        FALSE = "False"
        UNKNOWN = "Unknown"

        def __str__(self) -> str:
            return self.value

    class Phase(str, Enum):
        """Display-only projection of the Ready condition"""
        READY = "Ready"
        NOT_READY = "NotReady"
        UNKNOWN = "Unknown"
        TERMINATING = "Terminating"

        def __str__(self) -> str:
            return self.value


class SubjectKind(str, Enum):
    """Kinds of RBAC subjects"""
    USER = "User"
    GROUP = "Group"
    SERVICE_ACCOUNT = "ServiceAccount"

    def __str__(self) -> str:
        return self.value


class FileConstants:
    """File related constants"""

    DEFAULT_CONFIG_FILE = "tenancy-manager.yaml"

    # Default configuration file locations (in order of precedence)
    DEFAULT_CONFIG_LOCATIONS = [
        "tenancy-manager.yaml",
        "~/.tenancy-manager.yaml",
        "~/.config/tenancy-manager.yaml",
    ]


class ErrorMessages:
    """Centralized error message templates"""

    class AdmissionError(str, Enum):
        """Messages returned by the visibility filter"""
        NOT_OWNER_ON_CREATE = "cannot create {kind} you're not the owner of"
        OWNERSHIP_REQUIRED = "ownership is required for {verb} operation"
        UNKNOWN_SUBJECT_KIND = "unknown subject's kind: {kind}"

        def __str__(self) -> str:
            return self.value

    class StoreError(str, Enum):
        """Messages raised by the Resource Store adapters"""
        NOT_FOUND = '{kind} "{name}" not found'
        ALREADY_EXISTS = '{kind} "{name}" already exists'
        CONFLICT = (
            'Operation cannot be fulfilled on {kind} "{name}": the object has been modified; '
            "please apply your changes to the latest version and try again"
        )

        def __str__(self) -> str:
            return self.value

    class ConfigError(str, Enum):
        """Configuration-related error message templates"""
        CONFIG_FILE_NOT_FOUND = "Configuration file not found: {config_path}"
        INVALID_NAME = "Invalid object name format: {name}"
        RESERVED_SEPARATOR = "Name {name} must not contain the reserved separator {separator}"

        def __str__(self) -> str:
            return self.value
