"""
Tests for the tenant REST storage and the filtered watch bridge
"""

from typing import Iterator, List
from unittest.mock import Mock

import pytest

from tenancy_manager.apiserver import FilteredWatch, TenantREST
from tenancy_manager.core.constants import Kind
from tenancy_manager.core.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from tenancy_manager.core.models import Organization, Project
from tenancy_manager.store.base import EventType, WatchEvent, Watcher

from conftest import make_organization, make_project, make_role_binding, reconcile_until_stable, user


class ListWatcher(Watcher):
    """Upstream watcher replaying a fixed list of events"""

    def __init__(self, events: List[WatchEvent]):
        self.events = events
        self.stopped = False

    def __iter__(self) -> Iterator[WatchEvent]:
        for event in self.events:
            if self.stopped:
                return
            yield event

    def stop(self) -> None:
        self.stopped = True


@pytest.fixture
def organizations(store) -> TenantREST:
    return TenantREST(store, Kind.ORGANIZATION)


@pytest.fixture
def projects(store) -> TenantREST:
    return TenantREST(store, Kind.PROJECT)


class TestTenantREST:
    """Test REST verbs gated by ownership"""

    def test_rejects_non_tenant_kind(self, store):
        with pytest.raises(ValueError):
            TenantREST(store, Kind.ROLE)

    def test_create_requires_creator_in_owners(self, organizations, bob):
        """Test that a caller cannot create a tenant it does not own"""
        with pytest.raises(BadRequestError) as exc_info:
            organizations.create(bob, make_organization("acme", [user("alice")]))

        assert str(exc_info.value) == "cannot create organization you're not the owner of"

    @pytest.mark.parametrize("name", ["x-tenancy-y", "Acme", "acme_corp", ""])
    def test_create_rejects_invalid_organization_names(self, organizations, store, alice, name):
        """Test that names which could be mistaken for project namespaces are refused"""
        with pytest.raises(BadRequestError):
            organizations.create(alice, make_organization(name, [user("alice")]))

        assert store.list(Kind.ORGANIZATION) == []

    def test_create_rejects_project_name_with_separator(self, projects, store, alice):
        # Arrange
        project = make_project("acme", "web-tenancy-api", [user("alice")])

        # Act
        with pytest.raises(BadRequestError) as exc_info:
            projects.create(alice, project)

        # Assert
        assert "-tenancy-" in str(exc_info.value)
        assert store.list(Kind.PROJECT, "acme") == []

    def test_create_by_owner(self, organizations, alice):
        created = organizations.create(alice, make_organization("acme", [user("alice")]))

        assert created.name == "acme"
        assert created.metadata.uid

    def test_owner_sees_unreconciled_tenant(self, organizations, alice, acme):
        """Test that owners are visible before members are resolved"""
        assert organizations.get(alice, "acme").name == "acme"

    def test_list_filters_invisible_tenants(self, organizations, alice, bob, client):
        # Arrange
        client.create(make_organization("acme", [user("alice")]))
        client.create(make_organization("globex", [user("bob")]))

        # Act
        visible_to_alice = [o.name for o in organizations.list(alice)]
        visible_to_bob = [o.name for o in organizations.list(bob)]

        # Assert
        assert visible_to_alice == ["acme"]
        assert visible_to_bob == ["globex"]

    def test_unknown_user_sees_everything(self, organizations, client):
        client.create(make_organization("acme", [user("alice")]))

        assert [o.name for o in organizations.list(None)] == ["acme"]

    def test_update_with_stale_version_conflicts(self, organizations, alice, acme):
        # Arrange
        first = organizations.get(alice, "acme")
        second = organizations.get(alice, "acme")
        first.spec.owners.append(user("carol"))
        organizations.update(alice, first)

        # Act & Assert
        second.spec.owners.append(user("dave"))
        with pytest.raises(ConflictError):
            organizations.update(alice, second)

    def test_delete_returns_prior_object(self, organizations, alice, acme, store):
        deleted = organizations.delete(alice, "acme")

        assert isinstance(deleted, Organization)
        assert deleted.name == "acme"
        with pytest.raises(NotFoundError):
            store.get(Kind.ORGANIZATION, "acme")

    def test_delete_collection_checks_every_item(self, organizations, alice, client, store):
        """Test that nothing is deleted when one visible item is not owned"""
        # Arrange
        client.create(make_organization("acme", [user("alice")]))
        other = client.create(make_organization("globex", [user("bob")]))
        other.status.members = [user("alice")]
        store.update_status(other)

        # Act & Assert
        with pytest.raises(ForbiddenError):
            organizations.delete_collection(alice)
        assert len(store.list(Kind.ORGANIZATION)) == 2

    def test_delete_collection_of_owned_tenants(self, organizations, alice, client, store):
        client.create(make_organization("acme", [user("alice")]))
        client.create(make_organization("initech", [user("alice")]))
        client.create(make_organization("globex", [user("bob")]))

        deleted = organizations.delete_collection(alice)

        assert sorted(o.name for o in deleted) == ["acme", "initech"]
        assert [o.name for o in store.list(Kind.ORGANIZATION)] == ["globex"]

    def test_projects_are_namespace_scoped(self, projects, ready_acme, alice, bob):
        # Arrange
        created = projects.create(alice, make_project("acme", "web", [user("alice")]))

        # Act & Assert
        assert projects.namespace_scoped is True
        assert isinstance(projects.get(alice, "web", "acme"), Project)
        assert created.namespace == "acme"
        with pytest.raises(NotFoundError):
            projects.get(bob, "web", "acme")


class TestVisibilityScenario:
    """Test the visibility walk-through of a newly added member"""

    def test_member_added_by_role_binding(self, organizations, client, controllers, ready_acme, bob):
        """Test NotFound, then visibility after a binding, then Forbidden on update"""
        # Arrange & Act: outsider
        with pytest.raises(NotFoundError):
            organizations.get(bob, "acme")

        # Act: bind bob in the Organization namespace and let the controllers converge
        client.create(make_role_binding("acme", "bob-viewer", [user("bob")]))
        reconcile_until_stable(client, controllers)

        # Assert: bob is a member now
        org = organizations.get(bob, "acme")
        assert user("bob") in org.status.members

        # Assert: members may not modify
        org.spec.owners.append(user("bob"))
        with pytest.raises(ForbiddenError):
            organizations.update(bob, org)


class TestFilteredWatch:
    """Test the per-client watch bridge"""

    def test_only_visible_events_are_forwarded(self, alice):
        # Arrange
        events = [
            WatchEvent(EventType.ADDED, make_organization("acme", [user("alice")])),
            WatchEvent(EventType.ADDED, make_organization("globex", [user("bob")])),
            WatchEvent(EventType.DELETED, make_organization("acme", [user("alice")])),
        ]
        bridge = FilteredWatch(ListWatcher(events), Organization,
                               lambda o: user("alice") in o.owners)

        # Act
        received = [(e.type, e.object.name) for e in bridge]

        # Assert
        assert received == [(EventType.ADDED, "acme"), (EventType.DELETED, "acme")]

    def test_error_event_is_forwarded_and_ends_stream(self):
        upstream = ListWatcher([
            WatchEvent(EventType.ERROR, status={'code': 410, 'reason': 'Expired'}),
            WatchEvent(EventType.ADDED, make_organization("acme", [user("alice")])),
        ])
        bridge = FilteredWatch(upstream, Organization, lambda o: False)

        received = list(bridge)

        assert len(received) == 1
        assert received[0].status['reason'] == 'Expired'
        assert upstream.stopped is True

    def test_conversion_failure_yields_internal_error(self):
        """Test that an object of the wrong type ends the stream with an internal error"""
        upstream = ListWatcher([
            WatchEvent(EventType.ADDED, Mock()),
            WatchEvent(EventType.ADDED, make_organization("acme", [user("alice")])),
        ])
        bridge = FilteredWatch(upstream, Organization, lambda o: True)

        received = list(bridge)

        assert len(received) == 1
        assert received[0].type == EventType.ERROR
        assert received[0].status['code'] == 500
        assert received[0].status['reason'] == 'InternalError'

    def test_dict_objects_are_converted(self):
        upstream = ListWatcher([
            WatchEvent(EventType.ADDED, make_organization("acme", [user("alice")]).to_dict()),
        ])
        bridge = FilteredWatch(upstream, Organization, lambda o: True)

        received = list(bridge)

        assert isinstance(received[0].object, Organization)

    def test_store_watch_filters_per_caller(self, organizations, client, bob):
        # Arrange
        bridge = organizations.watch(bob)
        client.create(make_organization("acme", [user("alice")]))
        client.create(make_organization("globex", [user("bob")]))

        # Act
        first = next(iter(bridge))
        bridge.stop()

        # Assert
        assert first.object.name == "globex"
