from __future__ import annotations

import logging

import pytest

from nodeguard.authz.reasons import (
    is_reason_freetext,
    reason_accepted,
    reason_is_allowed,
    reason_matches_pattern,
)
from nodeguard.core.models import Operation, PolicyConfig


def test_allowed_list_is_case_insensitive() -> None:
    allowed = ("Testing", "Dependency error")
    assert reason_is_allowed(allowed, "testing")
    assert reason_is_allowed(allowed, "DEPENDENCY ERROR")
    assert not reason_is_allowed(allowed, "Testing please")
    assert not reason_is_allowed((), "Testing")


def test_pattern_is_anchored_and_case_sensitive() -> None:
    assert reason_matches_pattern(r"JIRA-\d+", "JIRA-123")
    assert not reason_matches_pattern(r"JIRA-\d+", "jira-123")
    assert not reason_matches_pattern(r"JIRA-\d+", "see JIRA-123 for details")


def test_empty_pattern_never_matches() -> None:
    assert not reason_matches_pattern("", "")
    assert not reason_matches_pattern("", "anything")


def test_invalid_pattern_degrades_to_no_match(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        assert not reason_matches_pattern("([unclosed", "([unclosed")
    assert "invalid reason pattern" in caplog.text.lower()


def test_freetext_only_for_delete() -> None:
    assert is_reason_freetext(Operation.DELETE, "for fun")
    assert not is_reason_freetext(Operation.DELETE, "")
    assert not is_reason_freetext(Operation.CORDON, "for fun")


def test_reason_accepted_combines_paths() -> None:
    policy = PolicyConfig(allowed_reasons=("Testing",), reason_pattern=r"CHG\d{6}")
    assert reason_accepted("testing", policy, Operation.CORDON)
    assert reason_accepted("CHG000123", policy, Operation.CORDON)
    assert not reason_accepted("for fun", policy, Operation.CORDON)
    assert reason_accepted("for fun", policy, Operation.DELETE)


def test_broken_pattern_does_not_block_other_paths() -> None:
    policy = PolicyConfig(allowed_reasons=("Testing",), reason_pattern="(")
    assert reason_accepted("Testing", policy, Operation.CORDON)
    assert reason_accepted("anything", policy, Operation.DELETE)
    assert not reason_accepted("anything", policy, Operation.CORDON)
