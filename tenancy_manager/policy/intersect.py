"""
Policy Rule Intersection

Clamps owner-requested RBAC rules to an administrator-defined ceiling. The
result of ``clamp(ceiling, requested)`` never grants anything that is not
granted by both inputs.
"""

import logging
from typing import List, Optional

from ..core.constants import KubernetesConstants
from ..core.models import PolicyRule

logger = logging.getLogger(__name__)


def _intersection(values1: List[str], values2: List[str]) -> List[str]:
    """Sorted set intersection"""
    return sorted(set(values1) & set(values2))


def _intersect_with_wildcard(values1: List[str], values2: List[str], wildcard: str) -> List[str]:
    """
    Wildcard-absorbing intersection.

    If either side holds the wildcard the other side is returned unchanged,
    otherwise the sorted set intersection.
    """
    if wildcard in values1:
        return list(values2)
    if wildcard in values2:
        return list(values1)
    return _intersection(values1, values2)


def intersect_verbs(verbs1: List[str], verbs2: List[str]) -> List[str]:
    return _intersect_with_wildcard(verbs1, verbs2, KubernetesConstants.VERB_ALL)


def intersect_api_groups(groups1: List[str], groups2: List[str]) -> List[str]:
    return _intersect_with_wildcard(groups1, groups2, KubernetesConstants.API_GROUP_ALL)


def intersect_resources(resources1: List[str], resources2: List[str]) -> List[str]:
    return _intersect_with_wildcard(resources1, resources2, KubernetesConstants.RESOURCE_ALL)


def intersect_non_resource_urls(urls1: List[str], urls2: List[str]) -> List[str]:
    return _intersect_with_wildcard(urls1, urls2, KubernetesConstants.NON_RESOURCE_ALL)


def intersect_resource_names(names1: List[str], names2: List[str]) -> List[str]:
    """An empty list is unrestricted, so it yields the other side"""
    if not names1:
        return list(names2)
    if not names2:
        return list(names1)
    return _intersection(names1, names2)


def intersect_rule(rule1: PolicyRule, rule2: PolicyRule) -> Optional[PolicyRule]:
    """
    Intersect two policy rules.

    Args:
        rule1: First rule (usually from the ceiling)
        rule2: Second rule (usually the requested one)

    Returns:
        The rule granting what both grant, or None when nothing is left.
        A result is a resource rule (API groups and resources non-empty),
        a non-resource rule (non-resource URLs non-empty), or both.
    """
    verbs = intersect_verbs(rule1.verbs, rule2.verbs)
    if not verbs:
        return None

    result = PolicyRule(verbs=verbs)
    valid = False

    api_groups = intersect_api_groups(rule1.api_groups, rule2.api_groups)
    resources = intersect_resources(rule1.resources, rule2.resources)
    if api_groups and resources:
        result.api_groups = api_groups
        result.resources = resources
        result.resource_names = intersect_resource_names(rule1.resource_names, rule2.resource_names)
        valid = True

    non_resource_urls = intersect_non_resource_urls(rule1.non_resource_urls, rule2.non_resource_urls)
    if non_resource_urls:
        result.non_resource_urls = non_resource_urls
        valid = True

    return result if valid else None


def clamp(ceiling: List[PolicyRule], requested: List[PolicyRule]) -> List[PolicyRule]:
    """
    Clamp requested rules to a ceiling.

    Every (ceiling, requested) pair is intersected and every non-empty result
    is kept, in iteration order. The output is neither de-duplicated nor
    minimised.

    Args:
        ceiling: Rules an administrator allows
        requested: Rules an owner asks for

    Returns:
        List of accepted rules (possibly empty)
    """
    accepted = []
    for ceiling_rule in ceiling:
        for requested_rule in requested:
            rule = intersect_rule(ceiling_rule, requested_rule)
            if rule is not None:
                accepted.append(rule)

    logger.debug(f"Clamped {len(requested)} requested rules against {len(ceiling)} "
                 f"ceiling rules into {len(accepted)} accepted rules")
    return accepted
