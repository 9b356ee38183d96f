"""
Membership Resolver

Derives the member set of a tenant namespace from the RoleBindings inside
it and, for Organizations, from the members of their ready Projects.
"""

import logging
from typing import Iterable, List

from ..core.constants import Kind
from ..core.models import RoleBinding, Subject, has_ready_condition
from ..store.client import Client

logger = logging.getLogger(__name__)


def sort_and_dedup(subjects: Iterable[Subject]) -> List[Subject]:
    """Sort subjects by canonical form and drop consecutive duplicates"""
    result: List[Subject] = []
    for subject in sorted(subjects, key=lambda s: s.canonical()):
        if not result or result[-1].canonical() != subject.canonical():
            result.append(subject)
    return result


def is_template_binding(binding: RoleBinding) -> bool:
    """True for bindings materialized by a role template"""
    template_kinds = {kind.value for kind in Kind.get_template_kinds()}
    return any(ref.controller and ref.kind in template_kinds for ref in binding.metadata.owner_references)


def extract_subjects(role_bindings: Iterable[RoleBinding]) -> List[Subject]:
    """Flatten the subjects of all given role bindings"""
    subjects: List[Subject] = []
    for binding in role_bindings:
        subjects.extend(binding.subjects)
    return sort_and_dedup(subjects)


def resolve_members(client: Client, namespace: str, include_projects: bool = False) -> List[Subject]:
    """
    Resolve the members of a tenant namespace.

    Args:
        client: Store client
        namespace: Tenant namespace to inspect
        include_projects: Also include members of ready Projects living in
            the namespace (Organization namespaces)

    Returns:
        Sorted, de-duplicated list of subjects. Owners are not included;
        callers merge them with ``merge_subjects``. Bindings written by role
        templates are skipped: their subjects are derived from this result.
    """
    bindings = [b for b in client.list(Kind.ROLE_BINDING, namespace) if not is_template_binding(b)]
    subjects = list(extract_subjects(bindings))

    if include_projects:
        for project in client.list(Kind.PROJECT, namespace):
            if has_ready_condition(project):
                subjects.extend(project.status.members)

    members = sort_and_dedup(subjects)
    logger.debug(f"Resolved {len(members)} members in namespace {namespace}")
    return members


def merge_subjects(owners: Iterable[Subject], members: Iterable[Subject]) -> List[Subject]:
    """Owners first, then every member not already listed"""
    merged = list(owners)
    seen = {subject.canonical() for subject in merged}
    for subject in members:
        if subject.canonical() not in seen:
            seen.add(subject.canonical())
            merged.append(subject)
    return merged
