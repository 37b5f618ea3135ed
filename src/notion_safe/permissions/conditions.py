"""Property-based write conditions.

A :class:`~notion_safe.permissions.rules.WriteCondition` names a page
property, its expected Notion type, and an expected value. The
:class:`ConditionEvaluator` fetches the property through the resource
store and hands it to the :class:`PropertyMatcher` registered for that
type.

Supported property types:
- ``people``      : expected user id is one of the listed people
- ``select``      : selected option name equals the expected string
- ``status``      : status option name equals the expected string
- ``multi_select``: expected string is one of the selected option names
- ``checkbox``    : checkbox value equals the expected boolean

Every failure to evaluate (missing property, type mismatch, store error)
yields ``False``.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable

from notion_safe.permissions.identifiers import ids_match
from notion_safe.permissions.rules import WriteCondition
from notion_safe.store.base import ResourceStore, ResourceStoreError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Matchers
# ---------------------------------------------------------------------------


class PropertyMatcher(ABC):
    """Compares a normalized property value against an expected value."""

    @property
    @abstractmethod
    def property_type(self) -> str:
        """Return the Notion property type this matcher handles."""

    @abstractmethod
    def matches(self, value: object, expected: str | bool) -> bool:
        """Return True if *value* satisfies *expected*."""


def _string_items(value: object) -> Iterable[str]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return [item for item in value if isinstance(item, str)]
    return []


class PeopleMatcher(PropertyMatcher):
    """Expected user id must be one of the people on the property."""

    @property
    def property_type(self) -> str:
        return "people"

    def matches(self, value: object, expected: str | bool) -> bool:
        if not isinstance(expected, str):
            return False
        return any(ids_match(person_id, expected) for person_id in _string_items(value))


class SelectMatcher(PropertyMatcher):
    """Single selected option name must equal the expected string."""

    @property
    def property_type(self) -> str:
        return "select"

    def matches(self, value: object, expected: str | bool) -> bool:
        return isinstance(expected, str) and isinstance(value, str) and value == expected


class StatusMatcher(SelectMatcher):
    """Status option name must equal the expected string."""

    @property
    def property_type(self) -> str:
        return "status"


class MultiSelectMatcher(PropertyMatcher):
    """Expected string must be the name of at least one selected option."""

    @property
    def property_type(self) -> str:
        return "multi_select"

    def matches(self, value: object, expected: str | bool) -> bool:
        if not isinstance(expected, str):
            return False
        return expected in _string_items(value)


class CheckboxMatcher(PropertyMatcher):
    """Checkbox value must equal the expected boolean."""

    @property
    def property_type(self) -> str:
        return "checkbox"

    def matches(self, value: object, expected: str | bool) -> bool:
        if not isinstance(expected, bool) or not isinstance(value, bool):
            return False
        return value is expected


_MATCHERS: dict[str, PropertyMatcher] = {
    matcher.property_type: matcher
    for matcher in (
        PeopleMatcher(),
        SelectMatcher(),
        StatusMatcher(),
        MultiSelectMatcher(),
        CheckboxMatcher(),
    )
}


def matcher_for(property_type: str) -> PropertyMatcher | None:
    """Return the registered matcher for *property_type*, if any."""
    return _MATCHERS.get(property_type)


# ---------------------------------------------------------------------------
# ConditionEvaluator
# ---------------------------------------------------------------------------


class ConditionEvaluator:
    """Evaluates write conditions against live page properties.

    Parameters
    ----------
    store:
        Store used to fetch the property value.
    """

    def __init__(self, store: ResourceStore) -> None:
        self._store = store

    async def evaluate(self, condition: WriteCondition, target_page_id: str) -> bool:
        """Return True only if the page property satisfies *condition*.

        Parameters
        ----------
        condition:
            The condition declared on the matched rule.
        target_page_id:
            Page whose property is inspected.

        Returns
        -------
        bool
            ``False`` when the property is absent, has a different type,
            the condition type is unknown, or the fetch fails.
        """
        matcher = matcher_for(condition.type)
        if matcher is None:
            logger.warning(
                "Unknown condition type %r on property %r; condition fails",
                condition.type,
                condition.property,
            )
            return False

        try:
            prop = await self._store.fetch_property(target_page_id, condition.property)
        except ResourceStoreError as exc:
            logger.debug(
                "Could not fetch %r on %s: %s", condition.property, target_page_id, exc
            )
            return False

        if prop is None:
            logger.debug("Property %r absent on %s", condition.property, target_page_id)
            return False
        if prop.type != condition.type:
            logger.debug(
                "Property %r on %s is %s, condition expects %s",
                condition.property,
                target_page_id,
                prop.type,
                condition.type,
            )
            return False

        return matcher.matches(prop.value, condition.expected)
