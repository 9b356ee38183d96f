"""
Data Models Module.

Typed API objects of the tenancy control plane. Every type carries explicit
``to_dict()`` / ``from_dict()`` field mappings between the camelCase wire
form used by the Resource Store and the snake_case attributes used in code.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Type

from .constants import ConditionConstants, Kind, KubernetesConstants, TenancyConstants
from .exceptions import OwnershipConflictError
from .utils import utc_now


def _strings(values: Optional[List[str]]) -> List[str]:
    return list(values) if values else []


@dataclass(frozen=True)
class Subject:
    """
    A User, Group or ServiceAccount identity reference.

    Subjects are hashable so they can be collected into sets when members
    are merged.
    """
    kind: str
    name: str
    namespace: str = ""
    api_group: str = ""

    def canonical(self) -> str:
        """Canonical string form used for sorting and de-duplication"""
        return f"{self.kind}/{self.api_group}/{self.namespace}/{self.name}"

    def to_dict(self) -> Dict[str, Any]:
        data = {'kind': self.kind, 'name': self.name}
        if self.api_group:
            data['apiGroup'] = self.api_group
        if self.namespace:
            data['namespace'] = self.namespace
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Subject':
        return cls(
            kind=data.get('kind', ''),
            name=data.get('name', ''),
            namespace=data.get('namespace') or '',
            api_group=data.get('apiGroup') or '',
        )


@dataclass
class PolicyRule:
    """
    Represents a single RBAC permission rule.

    This corresponds to a rule in a Kubernetes Role or ClusterRole.
    ``*`` is the reserved wildcard for verbs, API groups, resources and
    non-resource URLs; an empty ``resource_names`` list means unrestricted.
    """
    api_groups: List[str] = field(default_factory=list)
    resources: List[str] = field(default_factory=list)
    resource_names: List[str] = field(default_factory=list)
    verbs: List[str] = field(default_factory=list)
    non_resource_urls: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'verbs': list(self.verbs)}
        if self.api_groups:
            data['apiGroups'] = list(self.api_groups)
        if self.resources:
            data['resources'] = list(self.resources)
        if self.resource_names:
            data['resourceNames'] = list(self.resource_names)
        if self.non_resource_urls:
            data['nonResourceURLs'] = list(self.non_resource_urls)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PolicyRule':
        return cls(
            api_groups=_strings(data.get('apiGroups')),
            resources=_strings(data.get('resources')),
            resource_names=_strings(data.get('resourceNames')),
            verbs=_strings(data.get('verbs')),
            non_resource_urls=_strings(data.get('nonResourceURLs')),
        )


@dataclass
class Condition:
    """Latest observation of one aspect of an object's state"""
    type: str
    status: str
    reason: str = ""
    message: str = ""
    last_transition_time: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'status': self.status,
            'reason': self.reason,
            'message': self.message,
            'lastTransitionTime': self.last_transition_time,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Condition':
        return cls(
            type=data.get('type', ''),
            status=data.get('status', ''),
            reason=data.get('reason', ''),
            message=data.get('message', ''),
            last_transition_time=data.get('lastTransitionTime') or '',
        )


@dataclass
class ObjectReference:
    """Reference to an object by name (e.g. the namespace a tenant manages)"""
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ObjectReference':
        return cls(name=data.get('name', ''))


@dataclass
class OwnerReference:
    """Link from a dependent object to the object owning it"""
    api_version: str
    kind: str
    name: str
    uid: str
    controller: bool = True
    block_owner_deletion: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'apiVersion': self.api_version,
            'kind': self.kind,
            'name': self.name,
            'uid': self.uid,
            'controller': self.controller,
            'blockOwnerDeletion': self.block_owner_deletion,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OwnerReference':
        return cls(
            api_version=data.get('apiVersion', ''),
            kind=data.get('kind', ''),
            name=data.get('name', ''),
            uid=data.get('uid', ''),
            controller=bool(data.get('controller', False)),
            block_owner_deletion=bool(data.get('blockOwnerDeletion', False)),
        )


@dataclass
class ObjectMeta:
    """Standard object metadata"""
    name: str = ""
    namespace: str = ""
    uid: str = ""
    resource_version: str = ""
    generation: int = 0
    labels: Dict[str, str] = field(default_factory=dict)
    finalizers: List[str] = field(default_factory=list)
    owner_references: List[OwnerReference] = field(default_factory=list)
    deletion_timestamp: Optional[str] = None
    creation_timestamp: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'name': self.name}
        if self.namespace:
            data['namespace'] = self.namespace
        if self.uid:
            data['uid'] = self.uid
        if self.resource_version:
            data['resourceVersion'] = self.resource_version
        if self.generation:
            data['generation'] = self.generation
        if self.labels:
            data['labels'] = dict(self.labels)
        if self.finalizers:
            data['finalizers'] = list(self.finalizers)
        if self.owner_references:
            data['ownerReferences'] = [ref.to_dict() for ref in self.owner_references]
        if self.deletion_timestamp:
            data['deletionTimestamp'] = self.deletion_timestamp
        if self.creation_timestamp:
            data['creationTimestamp'] = self.creation_timestamp
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ObjectMeta':
        return cls(
            name=data.get('name', ''),
            namespace=data.get('namespace') or '',
            uid=data.get('uid') or '',
            resource_version=str(data.get('resourceVersion') or ''),
            generation=int(data.get('generation') or 0),
            labels=dict(data.get('labels') or {}),
            finalizers=_strings(data.get('finalizers')),
            owner_references=[OwnerReference.from_dict(ref) for ref in data.get('ownerReferences') or []],
            deletion_timestamp=data.get('deletionTimestamp'),
            creation_timestamp=data.get('creationTimestamp'),
        )


@dataclass
class LabelSelectorRequirement:
    """A single set-based label requirement"""
    key: str
    operator: str
    values: List[str] = field(default_factory=list)

    def matches(self, labels: Dict[str, str]) -> bool:
        if self.operator == "In":
            return self.key in labels and labels[self.key] in self.values
        if self.operator == "NotIn":
            return self.key not in labels or labels[self.key] not in self.values
        if self.operator == "Exists":
            return self.key in labels
        if self.operator == "DoesNotExist":
            return self.key not in labels
        raise ValueError(f"{self.operator!r} is not a valid label selector operator")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'key': self.key, 'operator': self.operator}
        if self.values:
            data['values'] = list(self.values)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LabelSelectorRequirement':
        return cls(key=data.get('key', ''), operator=data.get('operator', ''), values=_strings(data.get('values')))


@dataclass
class LabelSelector:
    """
    Label query over a set of objects.

    An empty selector matches every object. Callers holding an optional
    selector treat ``None`` as "matches nothing".
    """
    match_labels: Dict[str, str] = field(default_factory=dict)
    match_expressions: List[LabelSelectorRequirement] = field(default_factory=list)

    def matches(self, labels: Optional[Dict[str, str]]) -> bool:
        labels = labels or {}
        for key, value in self.match_labels.items():
            if labels.get(key) != value:
                return False
        return all(requirement.matches(labels) for requirement in self.match_expressions)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.match_labels:
            data['matchLabels'] = dict(self.match_labels)
        if self.match_expressions:
            data['matchExpressions'] = [expr.to_dict() for expr in self.match_expressions]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LabelSelector':
        return cls(
            match_labels=dict(data.get('matchLabels') or {}),
            match_expressions=[LabelSelectorRequirement.from_dict(e) for e in data.get('matchExpressions') or []],
        )


def selector_matches(selector: Optional[LabelSelector], labels: Optional[Dict[str, str]]) -> bool:
    """Evaluate an optional selector; a missing selector selects nothing"""
    if selector is None:
        return False
    return selector.matches(labels)


@dataclass
class DisplayMetadata:
    """Human readable details of a tenant or template"""
    display_name: str = ""
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {'displayName': self.display_name, 'description': self.description}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DisplayMetadata':
        return cls(display_name=data.get('displayName', ''), description=data.get('description', ''))


def _metadata_from(data: Dict[str, Any]) -> Optional[DisplayMetadata]:
    raw = data.get('metadata')
    return DisplayMetadata.from_dict(raw) if raw else None


# ============================================================================
# STATUS TYPES
# ============================================================================

@dataclass
class ConditionedStatus:
    """
    Status fields shared by every kind the controllers manage.

    ``phase`` is derived from the Ready condition and must never be set
    directly; use ``set_condition``.
    """
    observed_generation: int = 0
    conditions: List[Condition] = field(default_factory=list)
    phase: str = ""

    def get_condition(self, condition_type: str) -> Optional[Condition]:
        for condition in self.conditions:
            if condition.type == condition_type:
                return condition
        return None

    def set_condition(self, condition: Condition) -> None:
        """Replace or add the given condition and refresh the phase"""
        if not condition.last_transition_time:
            condition.last_transition_time = utc_now()

        for existing in self.conditions:
            if existing.type == condition.type:
                # Only move the transition time when the status flips
                if existing.status != condition.status:
                    existing.last_transition_time = condition.last_transition_time
                existing.status = condition.status
                existing.reason = condition.reason
                existing.message = condition.message
                break
        else:
            self.conditions.append(condition)
        self._update_phase()

    def _update_phase(self) -> None:
        ready = self.get_condition(ConditionConstants.READY)
        if ready is None:
            self.phase = ConditionConstants.Phase.UNKNOWN.value
        elif ready.status == ConditionConstants.Status.TRUE:
            self.phase = ConditionConstants.Phase.READY.value
        elif ready.status == ConditionConstants.Status.FALSE:
            if ready.reason == ConditionConstants.TERMINATING_REASON:
                self.phase = ConditionConstants.Phase.TERMINATING.value
            else:
                self.phase = ConditionConstants.Phase.NOT_READY.value
        else:
            self.phase = ConditionConstants.Phase.UNKNOWN.value

    def _base_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.observed_generation:
            data['observedGeneration'] = self.observed_generation
        if self.conditions:
            data['conditions'] = [c.to_dict() for c in self.conditions]
        if self.phase:
            data['phase'] = self.phase
        return data

    @staticmethod
    def _base_kwargs(data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'observed_generation': int(data.get('observedGeneration') or 0),
            'conditions': [Condition.from_dict(c) for c in data.get('conditions') or []],
            'phase': data.get('phase', ''),
        }


@dataclass
class TenantStatus(ConditionedStatus):
    """Observed state of an Organization or Project"""
    namespace: Optional[ObjectReference] = None
    members: List[Subject] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = self._base_dict()
        if self.namespace is not None:
            data['namespace'] = self.namespace.to_dict()
        if self.members:
            data['members'] = [m.to_dict() for m in self.members]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TenantStatus':
        namespace = data.get('namespace')
        return cls(
            namespace=ObjectReference.from_dict(namespace) if namespace else None,
            members=[Subject.from_dict(m) for m in data.get('members') or []],
            **cls._base_kwargs(data),
        )


@dataclass
class RoleTemplateTarget:
    """Audit entry for one tenant a role template was materialized into"""
    kind: str
    name: str
    api_group: str = KubernetesConstants.TENANCY_API_GROUP
    observed_generation: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind,
            'apiGroup': self.api_group,
            'name': self.name,
            'observedGeneration': self.observed_generation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RoleTemplateTarget':
        return cls(
            kind=data.get('kind', ''),
            name=data.get('name', ''),
            api_group=data.get('apiGroup', KubernetesConstants.TENANCY_API_GROUP),
            observed_generation=int(data.get('observedGeneration') or 0),
        )


@dataclass
class RoleTemplateStatus(ConditionedStatus):
    """Observed state of a role template"""
    targets: List[RoleTemplateTarget] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = self._base_dict()
        if self.targets:
            data['targets'] = [t.to_dict() for t in self.targets]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RoleTemplateStatus':
        return cls(targets=[RoleTemplateTarget.from_dict(t) for t in data.get('targets') or []],
                   **cls._base_kwargs(data))


@dataclass
class OrganizationRoleStatus(ConditionedStatus):
    """Observed state of an OrganizationRole"""
    accepted_rules: List[PolicyRule] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = self._base_dict()
        if self.accepted_rules:
            data['acceptedRules'] = [r.to_dict() for r in self.accepted_rules]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OrganizationRoleStatus':
        return cls(accepted_rules=[PolicyRule.from_dict(r) for r in data.get('acceptedRules') or []],
                   **cls._base_kwargs(data))


# ============================================================================
# SPEC TYPES
# ============================================================================

@dataclass
class TenantSpec:
    """Desired state of an Organization or Project"""
    owners: List[Subject] = field(default_factory=list)
    metadata: Optional[DisplayMetadata] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'owners': [o.to_dict() for o in self.owners]}
        if self.metadata is not None:
            data['metadata'] = self.metadata.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TenantSpec':
        return cls(owners=[Subject.from_dict(o) for o in data.get('owners') or []], metadata=_metadata_from(data))


@dataclass
class OrganizationRoleTemplateSpec:
    """Desired state of an OrganizationRoleTemplate"""
    scopes: List[str] = field(default_factory=list)
    bind_to: List[str] = field(default_factory=list)
    rules: List[PolicyRule] = field(default_factory=list)
    metadata: Optional[DisplayMetadata] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'scopes': list(self.scopes),
            'rules': [r.to_dict() for r in self.rules],
        }
        if self.bind_to:
            data['bindTo'] = list(self.bind_to)
        if self.metadata is not None:
            data['metadata'] = self.metadata.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OrganizationRoleTemplateSpec':
        return cls(
            scopes=_strings(data.get('scopes')),
            bind_to=_strings(data.get('bindTo')),
            rules=[PolicyRule.from_dict(r) for r in data.get('rules') or []],
            metadata=_metadata_from(data),
        )


@dataclass
class ProjectRoleTemplateSpec:
    """Desired state of a ProjectRoleTemplate"""
    bind_to: List[str] = field(default_factory=list)
    project_selector: Optional[LabelSelector] = None
    rules: List[PolicyRule] = field(default_factory=list)
    metadata: Optional[DisplayMetadata] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'rules': [r.to_dict() for r in self.rules]}
        if self.bind_to:
            data['bindTo'] = list(self.bind_to)
        if self.project_selector is not None:
            data['projectSelector'] = self.project_selector.to_dict()
        if self.metadata is not None:
            data['metadata'] = self.metadata.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectRoleTemplateSpec':
        selector = data.get('projectSelector')
        return cls(
            bind_to=_strings(data.get('bindTo')),
            project_selector=LabelSelector.from_dict(selector) if selector is not None else None,
            rules=[PolicyRule.from_dict(r) for r in data.get('rules') or []],
            metadata=_metadata_from(data),
        )


@dataclass
class OrganizationRoleSpec:
    """Rules an Organization owner requests"""
    rules: List[PolicyRule] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {'rules': [r.to_dict() for r in self.rules]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OrganizationRoleSpec':
        return cls(rules=[PolicyRule.from_dict(r) for r in data.get('rules') or []])


@dataclass
class RoleRef:
    """Reference from a RoleBinding to the Role it grants"""
    name: str
    kind: str = Kind.ROLE.value
    api_group: str = KubernetesConstants.RBAC_API_GROUP

    def to_dict(self) -> Dict[str, Any]:
        return {'apiGroup': self.api_group, 'kind': self.kind, 'name': self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RoleRef':
        return cls(
            name=data.get('name', ''),
            kind=data.get('kind', Kind.ROLE.value),
            api_group=data.get('apiGroup', KubernetesConstants.RBAC_API_GROUP),
        )


# ============================================================================
# OBJECTS
# ============================================================================

@dataclass
class KubeObject:
    """
    Base class of every object kept in the Resource Store.

    Subclasses set ``KIND`` and implement ``_body_to_dict`` / ``_from_body``
    for the fields next to ``metadata``.
    """
    KIND: ClassVar[Kind]

    metadata: ObjectMeta = field(default_factory=ObjectMeta)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def is_deleting(self) -> bool:
        return bool(self.metadata.deletion_timestamp)

    def key(self) -> str:
        """Human readable identity used in log messages"""
        if self.metadata.namespace:
            return f"{self.KIND.value} {self.metadata.namespace}/{self.metadata.name}"
        return f"{self.KIND.value} {self.metadata.name}"

    def deepcopy(self) -> 'KubeObject':
        return copy.deepcopy(self)

    def desired_state(self) -> Dict[str, Any]:
        """Every serialized field except metadata and status"""
        body = self._body_to_dict()
        body.pop('status', None)
        return body

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'apiVersion': self.KIND.info.api_version,
            'kind': self.KIND.value,
            'metadata': self.metadata.to_dict(),
        }
        data.update(self._body_to_dict())
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'KubeObject':
        return cls._from_body(ObjectMeta.from_dict(data.get('metadata') or {}), data)

    def _body_to_dict(self) -> Dict[str, Any]:
        return {}

    @classmethod
    def _from_body(cls, metadata: ObjectMeta, data: Dict[str, Any]) -> 'KubeObject':
        return cls(metadata=metadata)


@dataclass
class Tenant(KubeObject):
    """Organization or Project: owns a namespace, has owners and members"""
    spec: TenantSpec = field(default_factory=TenantSpec)
    status: TenantStatus = field(default_factory=TenantStatus)

    @property
    def owners(self) -> List[Subject]:
        return self.spec.owners

    @property
    def members(self) -> List[Subject]:
        return self.status.members

    def _body_to_dict(self) -> Dict[str, Any]:
        return {'spec': self.spec.to_dict(), 'status': self.status.to_dict()}

    @classmethod
    def _from_body(cls, metadata: ObjectMeta, data: Dict[str, Any]) -> 'Tenant':
        return cls(
            metadata=metadata,
            spec=TenantSpec.from_dict(data.get('spec') or {}),
            status=TenantStatus.from_dict(data.get('status') or {}),
        )


@dataclass
class Organization(Tenant):
    """Cluster-scoped top-level tenant"""
    KIND: ClassVar[Kind] = Kind.ORGANIZATION


@dataclass
class Project(Tenant):
    """Sub-tenant living in its Organization's namespace"""
    KIND: ClassVar[Kind] = Kind.PROJECT


@dataclass
class OrganizationRoleTemplate(KubeObject):
    """Administrator-defined permission ceiling, materialized into tenant namespaces"""
    KIND: ClassVar[Kind] = Kind.ORGANIZATION_ROLE_TEMPLATE

    spec: OrganizationRoleTemplateSpec = field(default_factory=OrganizationRoleTemplateSpec)
    status: RoleTemplateStatus = field(default_factory=RoleTemplateStatus)

    def has_scope(self, scope: str) -> bool:
        return str(scope) in self.spec.scopes

    def has_binding(self, bind_to: str) -> bool:
        return str(bind_to) in self.spec.bind_to

    def _body_to_dict(self) -> Dict[str, Any]:
        return {'spec': self.spec.to_dict(), 'status': self.status.to_dict()}

    @classmethod
    def _from_body(cls, metadata: ObjectMeta, data: Dict[str, Any]) -> 'OrganizationRoleTemplate':
        return cls(
            metadata=metadata,
            spec=OrganizationRoleTemplateSpec.from_dict(data.get('spec') or {}),
            status=RoleTemplateStatus.from_dict(data.get('status') or {}),
        )


@dataclass
class ProjectRoleTemplate(KubeObject):
    """Role template scoped to the Projects of one Organization"""
    KIND: ClassVar[Kind] = Kind.PROJECT_ROLE_TEMPLATE

    spec: ProjectRoleTemplateSpec = field(default_factory=ProjectRoleTemplateSpec)
    status: RoleTemplateStatus = field(default_factory=RoleTemplateStatus)

    def has_binding(self, bind_to: str) -> bool:
        return str(bind_to) in self.spec.bind_to

    def _body_to_dict(self) -> Dict[str, Any]:
        return {'spec': self.spec.to_dict(), 'status': self.status.to_dict()}

    @classmethod
    def _from_body(cls, metadata: ObjectMeta, data: Dict[str, Any]) -> 'ProjectRoleTemplate':
        return cls(
            metadata=metadata,
            spec=ProjectRoleTemplateSpec.from_dict(data.get('spec') or {}),
            status=RoleTemplateStatus.from_dict(data.get('status') or {}),
        )


@dataclass
class OrganizationRole(KubeObject):
    """Owner-authored role whose rules are clamped to the template ceiling"""
    KIND: ClassVar[Kind] = Kind.ORGANIZATION_ROLE

    spec: OrganizationRoleSpec = field(default_factory=OrganizationRoleSpec)
    status: OrganizationRoleStatus = field(default_factory=OrganizationRoleStatus)

    def _body_to_dict(self) -> Dict[str, Any]:
        return {'spec': self.spec.to_dict(), 'status': self.status.to_dict()}

    @classmethod
    def _from_body(cls, metadata: ObjectMeta, data: Dict[str, Any]) -> 'OrganizationRole':
        return cls(
            metadata=metadata,
            spec=OrganizationRoleSpec.from_dict(data.get('spec') or {}),
            status=OrganizationRoleStatus.from_dict(data.get('status') or {}),
        )


@dataclass
class Namespace(KubeObject):
    KIND: ClassVar[Kind] = Kind.NAMESPACE


@dataclass
class Role(KubeObject):
    KIND: ClassVar[Kind] = Kind.ROLE

    rules: List[PolicyRule] = field(default_factory=list)

    def _body_to_dict(self) -> Dict[str, Any]:
        return {'rules': [r.to_dict() for r in self.rules]}

    @classmethod
    def _from_body(cls, metadata: ObjectMeta, data: Dict[str, Any]) -> 'Role':
        return cls(metadata=metadata, rules=[PolicyRule.from_dict(r) for r in data.get('rules') or []])


@dataclass
class RoleBinding(KubeObject):
    KIND: ClassVar[Kind] = Kind.ROLE_BINDING

    subjects: List[Subject] = field(default_factory=list)
    role_ref: RoleRef = field(default_factory=lambda: RoleRef(name=""))

    def _body_to_dict(self) -> Dict[str, Any]:
        return {'subjects': [s.to_dict() for s in self.subjects], 'roleRef': self.role_ref.to_dict()}

    @classmethod
    def _from_body(cls, metadata: ObjectMeta, data: Dict[str, Any]) -> 'RoleBinding':
        return cls(
            metadata=metadata,
            subjects=[Subject.from_dict(s) for s in data.get('subjects') or []],
            role_ref=RoleRef.from_dict(data.get('roleRef') or {}),
        )


MODEL_BY_KIND: Dict[Kind, Type[KubeObject]] = {
    Kind.ORGANIZATION: Organization,
    Kind.PROJECT: Project,
    Kind.ORGANIZATION_ROLE: OrganizationRole,
    Kind.ORGANIZATION_ROLE_TEMPLATE: OrganizationRoleTemplate,
    Kind.PROJECT_ROLE_TEMPLATE: ProjectRoleTemplate,
    Kind.NAMESPACE: Namespace,
    Kind.ROLE: Role,
    Kind.ROLE_BINDING: RoleBinding,
}


def object_from_dict(data: Dict[str, Any], kind: Optional[Kind] = None) -> KubeObject:
    """
    Build the typed object for a serialized manifest.

    Args:
        data: Manifest dictionary (camelCase keys)
        kind: Kind to decode as; read from ``data['kind']`` when omitted

    Returns:
        Typed object

    Raises:
        ValueError: If the kind is not handled by the tenancy manager
    """
    if kind is None:
        try:
            kind = Kind(data.get('kind', ''))
        except ValueError:
            raise ValueError(f"unsupported kind: {data.get('kind')!r}")
    return MODEL_BY_KIND[kind].from_dict(data)


def is_ready(obj: KubeObject) -> bool:
    """
    Check whether an object with a conditioned status is ready.

    An object is ready when it is not being deleted, its status reflects the
    current generation and its Ready condition is True.
    """
    if obj.is_deleting:
        return False
    status = getattr(obj, 'status', None)
    if not isinstance(status, ConditionedStatus):
        return False
    if obj.metadata.generation != status.observed_generation:
        return False
    ready = status.get_condition(ConditionConstants.READY)
    return ready is not None and ready.status == ConditionConstants.Status.TRUE


def has_ready_condition(obj: KubeObject) -> bool:
    """Ready condition is True, regardless of generation or deletion"""
    status = getattr(obj, 'status', None)
    if not isinstance(status, ConditionedStatus):
        return False
    ready = status.get_condition(ConditionConstants.READY)
    return ready is not None and ready.status == ConditionConstants.Status.TRUE


def owner_reference_for(owner: KubeObject) -> OwnerReference:
    """Controller owner reference pointing at ``owner``"""
    return OwnerReference(
        api_version=owner.KIND.info.api_version,
        kind=owner.KIND.value,
        name=owner.metadata.name,
        uid=owner.metadata.uid,
    )


def is_owned_by(obj: KubeObject, owner: KubeObject) -> bool:
    return any(ref.uid == owner.metadata.uid and ref.kind == owner.KIND.value
               for ref in obj.metadata.owner_references)


def set_controller_reference(obj: KubeObject, owner: KubeObject) -> None:
    """
    Make ``owner`` the controlling owner of ``obj`` (adopting it if needed).

    Raises:
        OwnershipConflictError: If ``obj`` is already controlled by another object
    """
    owner_ref = owner_reference_for(owner)
    for ref in obj.metadata.owner_references:
        if ref.controller and ref.uid != owner_ref.uid:
            raise OwnershipConflictError(f"{obj.key()} is already controlled by {ref.kind} {ref.name}")
    if not any(ref.uid == owner_ref.uid for ref in obj.metadata.owner_references):
        obj.metadata.owner_references.append(owner_ref)


def valid_scopes() -> List[str]:
    return [scope.value for scope in TenancyConstants.RoleTemplateScope]
