"""
Tests for the reverse index used by secondary watches
"""

from unittest.mock import Mock

import pytest

from tenancy_manager.controllers import ReverseIndex, Request
from tenancy_manager.core.constants import Kind
from tenancy_manager.core.exceptions import MappingError, NotFoundError
from tenancy_manager.core.models import PolicyRule
from tenancy_manager.store.base import EventType, WatchEvent

from conftest import make_namespace, make_organization, make_organization_role, make_project_template

RULES = [PolicyRule(api_groups=[""], resources=["pods"], verbs=["get"])]


@pytest.fixture
def org_roles(client, acme):
    client.create(make_organization("globex", []))
    client.create(make_namespace("acme"))
    client.create(make_namespace("globex"))
    client.create(make_organization_role("acme", "viewer", RULES))
    client.create(make_organization_role("globex", "viewer", RULES))
    return ReverseIndex(client, [Kind.ORGANIZATION_ROLE, Kind.PROJECT_ROLE_TEMPLATE])


class TestReverseIndex:
    """Test priming, incremental updates and lookups"""

    def test_primes_on_first_lookup(self, org_roles):
        assert not org_roles.is_primed(Kind.ORGANIZATION_ROLE)

        requests = org_roles.requests(Kind.ORGANIZATION_ROLE)

        assert org_roles.is_primed(Kind.ORGANIZATION_ROLE)
        assert requests == [Request(Kind.ORGANIZATION_ROLE, "viewer", "acme"),
                            Request(Kind.ORGANIZATION_ROLE, "viewer", "globex")]

    def test_namespace_and_predicate_filters(self, org_roles, client):
        client.create(make_project_template("acme", "frontend", RULES))
        client.create(make_project_template("acme", "backend", RULES))

        by_namespace = org_roles.requests(Kind.ORGANIZATION_ROLE, namespace="globex")
        by_predicate = org_roles.requests(Kind.PROJECT_ROLE_TEMPLATE, namespace="acme",
                                          predicate=lambda t: t.name.startswith("front"))

        assert by_namespace == [Request(Kind.ORGANIZATION_ROLE, "viewer", "globex")]
        assert by_predicate == [Request(Kind.PROJECT_ROLE_TEMPLATE, "frontend", "acme")]

    def test_observes_additions_and_deletions(self, org_roles, client):
        # Arrange
        org_roles.prime_all()
        added = client.create(make_organization_role("acme", "editor", RULES))
        viewer = client.get(Kind.ORGANIZATION_ROLE, "viewer", "acme")

        # Act
        org_roles.observe(WatchEvent(EventType.ADDED, added))
        org_roles.observe(WatchEvent(EventType.DELETED, viewer))

        # Assert
        assert [(r.namespace, r.name) for r in org_roles.requests(Kind.ORGANIZATION_ROLE)] == [
            ("acme", "editor"), ("globex", "viewer")]

    def test_ignores_stale_events(self, org_roles, client):
        # Arrange
        org_roles.prime_all()
        stale = client.get(Kind.ORGANIZATION_ROLE, "viewer", "acme")
        fresh = stale.deepcopy()
        fresh.metadata.labels["team"] = "blue"
        fresh = client.update(fresh)

        # Act
        org_roles.observe(WatchEvent(EventType.MODIFIED, fresh))
        org_roles.observe(WatchEvent(EventType.MODIFIED, stale))

        # Assert
        indexed = org_roles.objects(Kind.ORGANIZATION_ROLE, namespace="acme")
        assert indexed[0].metadata.labels == {"team": "blue"}

    def test_ignores_unindexed_and_unprimed_kinds(self, org_roles):
        org_roles.observe(WatchEvent(EventType.ADDED, make_organization("initech", [])))
        org_roles.observe(WatchEvent(EventType.ADDED, make_organization_role("acme", "ghost", RULES)))

        assert not org_roles.is_primed(Kind.ORGANIZATION_ROLE)
        assert len(org_roles.objects(Kind.ORGANIZATION_ROLE)) == 2

    def test_invalidate_forces_a_fresh_list(self, org_roles, client):
        org_roles.prime_all()
        client.create(make_organization_role("acme", "editor", RULES))

        org_roles.invalidate(Kind.ORGANIZATION_ROLE)

        assert len(org_roles.requests(Kind.ORGANIZATION_ROLE)) == 3

    def test_list_failure_is_a_mapping_error(self):
        # Arrange
        client = Mock()
        client.list.side_effect = NotFoundError("the server could not find the requested resource")
        index = ReverseIndex(client, [Kind.ORGANIZATION_ROLE])

        # Act & Assert
        with pytest.raises(MappingError):
            index.requests(Kind.ORGANIZATION_ROLE)
        assert not index.is_primed(Kind.ORGANIZATION_ROLE)
