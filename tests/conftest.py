"""
Shared fixtures for the Tenancy Manager test suite

Provides an in-memory Resource Store, a store client, caller identities and
builders for the tenancy objects.
"""

from typing import Dict, List, Optional

import pytest

from tenancy_manager.apiserver.identity import UserInfo
from tenancy_manager.controllers import INDEXED_KINDS, ReverseIndex, Request, create_controllers
from tenancy_manager.core.constants import Kind, SubjectKind
from tenancy_manager.core.models import (
    LabelSelector, Namespace, ObjectMeta, Organization, OrganizationRole, OrganizationRoleSpec,
    OrganizationRoleTemplate, OrganizationRoleTemplateSpec, PolicyRule, Project, ProjectRoleTemplate,
    ProjectRoleTemplateSpec, RoleBinding, RoleRef, Subject, TenantSpec
)
from tenancy_manager.store.client import Client
from tenancy_manager.store.memory import MemoryStore


def user(name: str) -> Subject:
    return Subject(kind=SubjectKind.USER.value, name=name, api_group="rbac.authorization.k8s.io")


def group(name: str) -> Subject:
    return Subject(kind=SubjectKind.GROUP.value, name=name, api_group="rbac.authorization.k8s.io")


def service_account(namespace: str, name: str) -> Subject:
    return Subject(kind=SubjectKind.SERVICE_ACCOUNT.value, name=name, namespace=namespace)


def make_organization(name: str, owners: List[Subject]) -> Organization:
    return Organization(metadata=ObjectMeta(name=name), spec=TenantSpec(owners=list(owners)))


def make_project(namespace: str, name: str, owners: List[Subject],
                 labels: Optional[Dict[str, str]] = None) -> Project:
    return Project(
        metadata=ObjectMeta(name=name, namespace=namespace, labels=dict(labels or {})),
        spec=TenantSpec(owners=list(owners)),
    )


def make_role_binding(namespace: str, name: str, subjects: List[Subject], role: str = "viewer") -> RoleBinding:
    return RoleBinding(
        metadata=ObjectMeta(name=name, namespace=namespace),
        subjects=list(subjects),
        role_ref=RoleRef(name=role),
    )


def make_org_template(name: str, rules: List[PolicyRule], scopes: List[str],
                      bind_to: Optional[List[str]] = None) -> OrganizationRoleTemplate:
    return OrganizationRoleTemplate(
        metadata=ObjectMeta(name=name),
        spec=OrganizationRoleTemplateSpec(scopes=list(scopes), bind_to=list(bind_to or []), rules=list(rules)),
    )


def make_project_template(namespace: str, name: str, rules: List[PolicyRule],
                          selector: Optional[LabelSelector] = None,
                          bind_to: Optional[List[str]] = None) -> ProjectRoleTemplate:
    return ProjectRoleTemplate(
        metadata=ObjectMeta(name=name, namespace=namespace),
        spec=ProjectRoleTemplateSpec(bind_to=list(bind_to or []), project_selector=selector, rules=list(rules)),
    )


def make_organization_role(namespace: str, name: str, rules: List[PolicyRule]) -> OrganizationRole:
    return OrganizationRole(metadata=ObjectMeta(name=name, namespace=namespace),
                            spec=OrganizationRoleSpec(rules=list(rules)))


def make_namespace(name: str) -> Namespace:
    return Namespace(metadata=ObjectMeta(name=name))


def reconcile_until_stable(client: Client, controllers, max_rounds: int = 25) -> int:
    """
    Reconcile every object of every controller until a full pass writes nothing

    Returns:
        int: Number of passes that performed writes
    """
    store = client.store
    for rounds in range(max_rounds):
        before = store.writes
        for controller in controllers:
            for obj in client.list(controller.KIND):
                controller.reconcile(Request(controller.KIND, obj.name, obj.namespace))
        if store.writes == before:
            return rounds
    raise AssertionError(f"controllers did not converge after {max_rounds} passes")


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def client(store) -> Client:
    return Client(store)


@pytest.fixture
def index(client) -> ReverseIndex:
    return ReverseIndex(client, INDEXED_KINDS)


@pytest.fixture
def controllers(client, index):
    return create_controllers(client, index)


@pytest.fixture
def alice() -> UserInfo:
    return UserInfo(username="alice", groups=["system:authenticated"])


@pytest.fixture
def bob() -> UserInfo:
    return UserInfo(username="bob", groups=["system:authenticated"])


@pytest.fixture
def acme(client) -> Organization:
    """Organization ``acme`` owned by alice, stored but not reconciled"""
    return client.create(make_organization("acme", [user("alice")]))


@pytest.fixture
def ready_acme(client, controllers, acme) -> Organization:
    """Organization ``acme`` reconciled until stable"""
    reconcile_until_stable(client, controllers)
    return client.get(Kind.ORGANIZATION, "acme")
