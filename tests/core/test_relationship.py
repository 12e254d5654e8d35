"""
Tests for relationship state resolution.
"""
import logging
from types import SimpleNamespace

import pytest

from profinder.core.relationship import (
    BLOCKED_STATES,
    RelationshipState,
    has_block_by_me,
    is_blocked,
    is_connection_asymmetric,
    mirror,
    resolve_state,
)


def record(connections=(), pending=(), blocked=()):
    return SimpleNamespace(
        connections=list(connections),
        pending_connections=list(pending),
        blocked_users=list(blocked),
    )


class TestResolveState:
    """Tests for resolve_state()."""

    def test_strangers(self):
        assert resolve_state("a", record(), "b", record()) == RelationshipState.STRANGERS

    def test_request_sent_by_me_lives_on_receiver(self):
        state = resolve_state("a", record(), "b", record(pending=["a"]))
        assert state == RelationshipState.REQUEST_SENT_BY_ME

    def test_request_sent_by_them(self):
        state = resolve_state("a", record(pending=["b"]), "b", record())
        assert state == RelationshipState.REQUEST_SENT_BY_THEM

    def test_connected(self):
        state = resolve_state("a", record(connections=["b"]), "b", record(connections=["a"]))
        assert state == RelationshipState.CONNECTED

    def test_blocked_by_me(self):
        state = resolve_state("a", record(blocked=["b"]), "b", record())
        assert state == RelationshipState.BLOCKED_BY_ME

    def test_blocked_by_them(self):
        state = resolve_state("a", record(), "b", record(blocked=["a"]))
        assert state == RelationshipState.BLOCKED_BY_THEM

    def test_mutually_blocked(self):
        state = resolve_state("a", record(blocked=["b"]), "b", record(blocked=["a"]))
        assert state == RelationshipState.MUTUALLY_BLOCKED

    def test_block_takes_precedence_over_pending_request(self):
        state = resolve_state("a", record(pending=["b"], blocked=["b"]), "b", record())
        assert state == RelationshipState.BLOCKED_BY_ME

    def test_block_takes_precedence_over_connection(self):
        me = record(connections=["b"])
        other = record(connections=["a"], blocked=["a"])
        assert resolve_state("a", me, "b", other) == RelationshipState.BLOCKED_BY_THEM

    def test_connection_takes_precedence_over_pending(self):
        me = record(connections=["b"], pending=["b"])
        other = record(connections=["a"])
        assert resolve_state("a", me, "b", other) == RelationshipState.CONNECTED

    def test_missing_other_record_resolves_as_empty(self):
        assert resolve_state("a", record(), "b", None) == RelationshipState.STRANGERS

    def test_asymmetric_connection_is_tolerated_and_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="profinder.core.relationship"):
            state = resolve_state("a", record(connections=["b"]), "b", record())

        assert state == RelationshipState.CONNECTED
        assert "Asymmetric connection" in caplog.text

    @pytest.mark.parametrize("me,other", [
        (record(), record()),
        (record(pending=["b"]), record()),
        (record(), record(pending=["a"])),
        (record(connections=["b"]), record(connections=["a"])),
        (record(blocked=["b"]), record()),
        (record(), record(blocked=["a"])),
        (record(blocked=["b"]), record(blocked=["a"])),
    ])
    def test_states_mirror_between_sides(self, me, other):
        forward = resolve_state("a", me, "b", other)
        backward = resolve_state("b", other, "a", me)
        assert backward == mirror(forward)


class TestStateHelpers:
    """Tests for the state predicates."""

    def test_mirror_is_an_involution(self):
        for state in RelationshipState:
            assert mirror(mirror(state)) == state

    def test_is_blocked(self):
        assert all(is_blocked(state) for state in BLOCKED_STATES)
        assert not is_blocked(RelationshipState.CONNECTED)

    def test_has_block_by_me(self):
        assert has_block_by_me(RelationshipState.BLOCKED_BY_ME)
        assert has_block_by_me(RelationshipState.MUTUALLY_BLOCKED)
        assert not has_block_by_me(RelationshipState.BLOCKED_BY_THEM)

    def test_is_connection_asymmetric(self):
        assert is_connection_asymmetric("a", record(connections=["b"]), "b", record())
        assert not is_connection_asymmetric(
            "a", record(connections=["b"]), "b", record(connections=["a"])
        )
