"""
Tests for namespace naming, provisioning and teardown
"""

import pytest

from tenancy_manager.core.constants import Kind, KubernetesConstants
from tenancy_manager.core.exceptions import ConflictError
from tenancy_manager.core.models import ObjectMeta, OwnerReference, Role
from tenancy_manager.namespaces import (
    OwnershipForest, decode_project_namespace, namespace_name_for, project_namespace_name,
    reconcile_namespace, teardown_owned_objects
)

from conftest import make_namespace, make_organization, make_project, make_role_binding, user


def _owned(name: str, uid: str, parent_uid: str = None, controller: bool = True) -> Role:
    refs = [OwnerReference(api_version="v1", kind="Thing", name="parent", uid=parent_uid,
                           controller=controller)] if parent_uid else []
    return Role(metadata=ObjectMeta(name=name, namespace="ns", uid=uid, owner_references=refs))


class TestNaming:
    """Test the deterministic namespace naming scheme"""

    def test_organization_owns_namespace_of_its_name(self):
        assert namespace_name_for(make_organization("acme", [])) == "acme"

    def test_project_namespace_round_trip(self):
        project = make_project("acme", "web", [])

        name = namespace_name_for(project)

        assert name == "acme-tenancy-web"
        assert decode_project_namespace(name) == ("acme", "web")

    @pytest.mark.parametrize("org,project", [("a", "b"), ("team-1", "api-v2"), ("x" * 20, "y" * 20)])
    def test_round_trip_for_valid_names(self, org, project):
        assert decode_project_namespace(project_namespace_name(org, project)) == (org, project)

    @pytest.mark.parametrize("name", ["acme", "acme-tenancy-", "-tenancy-web", "a-tenancy-b-tenancy-c"])
    def test_decode_rejects_invalid_names(self, name):
        with pytest.raises(ValueError):
            decode_project_namespace(name)

    def test_namespace_name_for_non_tenant(self):
        with pytest.raises(TypeError):
            namespace_name_for(make_namespace("acme"))


class TestReconcileNamespace:
    """Test namespace provisioning"""

    def test_creates_owned_namespace(self, client, acme):
        namespace = reconcile_namespace(client, acme)

        assert namespace.name == "acme"
        assert namespace.metadata.owner_references[0].uid == acme.metadata.uid
        assert namespace.metadata.owner_references[0].controller is True
        assert namespace.metadata.labels[KubernetesConstants.MANAGED_BY_LABEL] == "tenancy-manager"

    def test_second_pass_writes_nothing(self, client, store, acme):
        reconcile_namespace(client, acme)
        writes = store.writes

        reconcile_namespace(client, acme)

        assert store.writes == writes

    def test_adopts_existing_namespace(self, client, acme):
        client.create(make_namespace("acme"))

        namespace = reconcile_namespace(client, acme)

        assert [ref.uid for ref in namespace.metadata.owner_references] == [acme.metadata.uid]

    def test_refuses_namespace_of_another_controller(self, client, acme):
        # Arrange
        impostor = client.create(make_organization("globex", [user("bob")]))
        namespace = make_namespace("acme")
        namespace.metadata.owner_references.append(
            OwnerReference(api_version="tenancy.io/v1alpha1", kind="Organization",
                           name=impostor.name, uid=impostor.metadata.uid))
        client.create(namespace)

        # Act & Assert
        with pytest.raises(ConflictError):
            reconcile_namespace(client, acme)


class TestOwnershipForest:
    """Test the explicit ownership graph"""

    def test_descendants_are_children_first(self):
        # Arrange
        objects = [
            _owned("child", "c", parent_uid="root"),
            _owned("grandchild", "g", parent_uid="c"),
            _owned("other", "o", parent_uid="elsewhere"),
        ]

        # Act
        order = [o.name for o in OwnershipForest(objects).descendants("root")]

        # Assert
        assert order == ["grandchild", "child"]

    def test_non_controller_reference_is_used_as_fallback(self):
        forest = OwnershipForest([_owned("child", "c", parent_uid="root", controller=False)])

        assert [o.name for o in forest.children("root")] == ["child"]


class TestTeardown:
    """Test teardown of owned objects"""

    def test_reports_clean_when_nothing_is_owned(self, client, acme):
        assert teardown_owned_objects(client, acme, [Kind.NAMESPACE]) is True

    def test_deletes_owned_objects_and_waits(self, client, store, acme):
        # Arrange
        reconcile_namespace(client, acme)
        client.create(make_role_binding("acme", "viewers", [user("bob")]))

        # Act
        first = teardown_owned_objects(client, acme, [Kind.NAMESPACE])
        second = teardown_owned_objects(client, acme, [Kind.NAMESPACE])

        # Assert
        assert first is False
        assert second is True
        assert store.list(Kind.NAMESPACE) == []
        assert store.list(Kind.ROLE_BINDING) == []
