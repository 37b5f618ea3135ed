"""Tests for property matchers and ConditionEvaluator."""
from __future__ import annotations

import pytest

from notion_safe.permissions.conditions import (
    CheckboxMatcher,
    ConditionEvaluator,
    MultiSelectMatcher,
    PeopleMatcher,
    SelectMatcher,
    StatusMatcher,
    matcher_for,
)
from notion_safe.permissions.rules import WriteCondition


@pytest.fixture()
def evaluator(store) -> ConditionEvaluator:
    return ConditionEvaluator(store)


# ---------------------------------------------------------------------------
# Matchers
# ---------------------------------------------------------------------------


class TestMatchers:
    def test_registry_covers_all_types(self) -> None:
        for prop_type in ("people", "select", "multi_select", "status", "checkbox"):
            matcher = matcher_for(prop_type)
            assert matcher is not None
            assert matcher.property_type == prop_type

    def test_registry_unknown_type(self) -> None:
        assert matcher_for("rich_text") is None

    def test_people_match(self) -> None:
        assert PeopleMatcher().matches(("u1", "u2"), "u2")

    def test_people_match_ignores_hyphenation(self) -> None:
        assert PeopleMatcher().matches(("AB-CD",), "abcd")

    def test_people_no_match(self) -> None:
        assert not PeopleMatcher().matches(("u1",), "u9")

    def test_people_empty(self) -> None:
        assert not PeopleMatcher().matches((), "u1")

    def test_select_match(self) -> None:
        assert SelectMatcher().matches("Doing", "Doing")

    def test_select_unset(self) -> None:
        assert not SelectMatcher().matches(None, "Doing")

    def test_select_is_case_sensitive(self) -> None:
        assert not SelectMatcher().matches("doing", "Doing")

    def test_status_match(self) -> None:
        assert StatusMatcher().matches("In progress", "In progress")

    def test_multi_select_match(self) -> None:
        assert MultiSelectMatcher().matches(("a", "b"), "b")

    def test_multi_select_no_match(self) -> None:
        assert not MultiSelectMatcher().matches(("a", "b"), "c")

    def test_checkbox_match(self) -> None:
        assert CheckboxMatcher().matches(True, True)
        assert CheckboxMatcher().matches(False, False)

    def test_checkbox_mismatch(self) -> None:
        assert not CheckboxMatcher().matches(False, True)

    def test_checkbox_string_expected_never_matches(self) -> None:
        assert not CheckboxMatcher().matches(True, "true")


# ---------------------------------------------------------------------------
# ConditionEvaluator
# ---------------------------------------------------------------------------


class TestConditionEvaluator:
    @pytest.mark.asyncio
    async def test_people_condition_met(self, store, evaluator) -> None:
        store.set_property("page", "Assignee", "people", ("U",))
        condition = WriteCondition(property="Assignee", type="people", expected="U")
        assert await evaluator.evaluate(condition, "page")

    @pytest.mark.asyncio
    async def test_people_condition_other_user(self, store, evaluator) -> None:
        store.set_property("page", "Assignee", "people", ("V",))
        condition = WriteCondition(property="Assignee", type="people", expected="U")
        assert not await evaluator.evaluate(condition, "page")

    @pytest.mark.asyncio
    async def test_absent_property_fails(self, store, evaluator) -> None:
        store.add_page("page")
        condition = WriteCondition(property="Assignee", type="people", expected="U")
        assert not await evaluator.evaluate(condition, "page")

    @pytest.mark.asyncio
    async def test_type_mismatch_fails(self, store, evaluator) -> None:
        store.set_property("page", "Status", "select", "Done")
        condition = WriteCondition(property="Status", type="status", expected="Done")
        assert not await evaluator.evaluate(condition, "page")

    @pytest.mark.asyncio
    async def test_fetch_failure_fails(self, store, evaluator) -> None:
        store.set_property("page", "Done", "checkbox", True)
        store.failing.add("page")
        condition = WriteCondition(property="Done", type="checkbox", expected=True)
        assert not await evaluator.evaluate(condition, "page")

    @pytest.mark.asyncio
    async def test_missing_page_fails(self, evaluator) -> None:
        condition = WriteCondition(property="Done", type="checkbox", expected=True)
        assert not await evaluator.evaluate(condition, "ghost")

    @pytest.mark.asyncio
    async def test_unknown_condition_type_fails_without_fetch(
        self, store, evaluator
    ) -> None:
        condition = WriteCondition(property="Notes", type="rich_text", expected="x")
        assert not await evaluator.evaluate(condition, "page")
        assert store.property_calls == []

    @pytest.mark.asyncio
    async def test_multi_select_condition(self, store, evaluator) -> None:
        store.set_property("page", "Tags", "multi_select", ("agent", "draft"))
        condition = WriteCondition(property="Tags", type="multi_select", expected="agent")
        assert await evaluator.evaluate(condition, "page")
