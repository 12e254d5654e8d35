"""
Unit tests for ConnectionService.
Tests the relationship action handlers against a real store.
"""
import pytest

from profinder.core.errors import ErrorKind, TransportError
from profinder.core.relationship import RelationshipState, resolve_state
from profinder.schemas.auth import ActorContext
from profinder.services.connection_service import ConnectionService


async def state_between(store, me_id, other_id):
    users = await store.get_users([me_id, other_id])
    return resolve_state(me_id, users.get(me_id), other_id, users.get(other_id))


@pytest.mark.asyncio
class TestRequests:
    """Request, cancel, accept and reject."""

    async def test_request_then_accept_connects_both_ways(self, store, alice, bob, alice_actor, bob_actor):
        service = ConnectionService(store)

        sent = await service.send_request(alice_actor, "bob")
        assert sent.ok
        assert await state_between(store, "alice", "bob") == RelationshipState.REQUEST_SENT_BY_ME
        assert await state_between(store, "bob", "alice") == RelationshipState.REQUEST_SENT_BY_THEM

        accepted = await service.accept_request(bob_actor, "alice")
        assert accepted.ok
        assert accepted.data == RelationshipState.CONNECTED

        assert await state_between(store, "alice", "bob") == RelationshipState.CONNECTED
        assert await state_between(store, "bob", "alice") == RelationshipState.CONNECTED

        bob_record = await store.get_user("bob")
        alice_record = await store.get_user("alice")
        assert bob_record.pending_connections == []
        assert alice_record.pending_connections == []

    async def test_request_to_missing_user_is_not_found(self, store, alice, alice_actor):
        result = await ConnectionService(store).send_request(alice_actor, "ghost")

        assert not result.ok
        assert result.kind == ErrorKind.NOT_FOUND

    async def test_request_twice_is_precondition_failed(self, store, alice, bob, alice_actor):
        service = ConnectionService(store)
        await service.send_request(alice_actor, "bob")

        result = await service.send_request(alice_actor, "bob")

        assert result.kind == ErrorKind.PRECONDITION_FAILED
        assert result.reason == RelationshipState.REQUEST_SENT_BY_ME.value

    async def test_request_to_self_is_rejected(self, store, alice, alice_actor):
        result = await ConnectionService(store).send_request(alice_actor, "alice")

        assert result.kind == ErrorKind.PRECONDITION_FAILED
        assert result.reason == "self_action"

    async def test_cancel_is_idempotent(self, store, alice, bob, alice_actor):
        service = ConnectionService(store)
        await service.send_request(alice_actor, "bob")

        first = await service.cancel_request(alice_actor, "bob")
        second = await service.cancel_request(alice_actor, "bob")

        assert first.ok and second.ok
        assert await state_between(store, "alice", "bob") == RelationshipState.STRANGERS

    async def test_reject_is_idempotent(self, store, alice, bob, alice_actor, bob_actor):
        service = ConnectionService(store)
        await service.send_request(alice_actor, "bob")

        first = await service.reject_request(bob_actor, "alice")
        second = await service.reject_request(bob_actor, "alice")

        assert first.ok and second.ok
        assert (await store.get_user("bob")).pending_connections == []

    async def test_accept_without_request_fails(self, store, alice, bob, bob_actor):
        result = await ConnectionService(store).accept_request(bob_actor, "alice")

        assert result.kind == ErrorKind.PRECONDITION_FAILED

    async def test_accept_reports_partial_write(self, store, alice, bob, alice_actor, bob_actor, mocker):
        service = ConnectionService(store)
        await service.send_request(alice_actor, "bob")

        original = store.update_user

        async def flaky_update(user_id, **kwargs):
            if user_id == "alice":
                raise TransportError("down")
            return await original(user_id, **kwargs)

        mocker.patch.object(store, "update_user", side_effect=flaky_update)

        result = await service.accept_request(bob_actor, "alice")

        assert result.kind == ErrorKind.PARTIAL_WRITE_FAILURE
        assert result.data == {"user_id": "alice"}
        # First half landed; the resolver tolerates the asymmetry
        assert (await store.get_user("bob")).connections == ["alice"]

    async def test_accept_succeeds_when_notification_fails(
        self, store, broker, alice, bob, alice_actor, bob_actor, mocker
    ):
        service = ConnectionService(store)
        await service.send_request(alice_actor, "bob")

        async def broker_down(topic):
            if topic == "user:alice":
                raise TransportError("redis down")

        mocker.patch.object(broker, "publish", side_effect=broker_down)

        result = await service.accept_request(bob_actor, "alice")

        assert result.ok
        assert result.data == RelationshipState.CONNECTED
        assert (await store.get_user("alice")).connections == ["bob"]
        assert (await store.get_user("bob")).connections == ["alice"]


@pytest.mark.asyncio
class TestDisconnectAndBlock:
    """Disconnect, block and unblock."""

    async def test_disconnect_removes_both_sides(self, store, connected, alice_actor):
        result = await ConnectionService(store).disconnect(alice_actor, "bob")

        assert result.ok
        assert (await store.get_user("alice")).connections == []
        assert (await store.get_user("bob")).connections == []

    async def test_disconnect_strangers_fails(self, store, alice, bob, alice_actor):
        result = await ConnectionService(store).disconnect(alice_actor, "bob")

        assert result.kind == ErrorKind.PRECONDITION_FAILED

    async def test_block_keeps_connection_but_takes_precedence(self, store, connected, alice_actor):
        result = await ConnectionService(store).block(alice_actor, "bob")

        assert result.ok
        assert result.data == RelationshipState.BLOCKED_BY_ME
        assert (await store.get_user("alice")).connections == ["bob"]
        assert await state_between(store, "bob", "alice") == RelationshipState.BLOCKED_BY_THEM

    async def test_block_twice_fails(self, store, alice, bob, alice_actor):
        service = ConnectionService(store)
        await service.block(alice_actor, "bob")

        result = await service.block(alice_actor, "bob")

        assert result.kind == ErrorKind.PRECONDITION_FAILED
        assert result.reason == "already_blocked"

    async def test_block_back_makes_mutual(self, store, alice, bob, alice_actor, bob_actor):
        service = ConnectionService(store)
        await service.block(alice_actor, "bob")

        result = await service.block(bob_actor, "alice")

        assert result.data == RelationshipState.MUTUALLY_BLOCKED

    async def test_unblock_is_idempotent(self, store, alice, bob, alice_actor):
        service = ConnectionService(store)
        await service.block(alice_actor, "bob")

        first = await service.unblock(alice_actor, "bob")
        second = await service.unblock(alice_actor, "bob")

        assert first.ok and second.ok
        assert first.data == RelationshipState.STRANGERS
        assert (await store.get_user("alice")).blocked_users == []

    async def test_unblock_restores_connection(self, store, connected, alice_actor):
        service = ConnectionService(store)
        await service.block(alice_actor, "bob")

        result = await service.unblock(alice_actor, "bob")

        assert result.data == RelationshipState.CONNECTED


@pytest.mark.asyncio
class TestReports:
    """Report and unreport."""

    async def test_report_and_unreport(self, store, alice, bob, alice_actor):
        service = ConnectionService(store)

        reported = await service.report(alice_actor, "bob", "Spam")
        assert reported.ok
        assert await service.has_reported(alice_actor, "bob")

        withdrawn = await service.unreport(alice_actor, "bob")
        assert withdrawn.ok
        assert withdrawn.data == 1
        assert not await service.has_reported(alice_actor, "bob")

    async def test_unreport_without_report_is_noop(self, store, alice, bob, alice_actor):
        result = await ConnectionService(store).unreport(alice_actor, "bob")

        assert result.ok
        assert result.data == 0

    async def test_report_missing_user(self, store, alice, alice_actor):
        result = await ConnectionService(store).report(alice_actor, "ghost", "Spam")

        assert result.kind == ErrorKind.NOT_FOUND


@pytest.mark.asyncio
class TestDeleteAccount:
    """Account deletion cascade."""

    async def test_cascade_removes_every_reference(self, store, make_user):
        await make_user("alice")
        await make_user("bob", connections=["alice"])
        await make_user("carol", pending_connections=["alice"])
        await make_user("dave", blocked_users=["alice"])
        await store.update_user("alice", add={"connections": ["bob"]})

        result = await ConnectionService(store).delete_account(ActorContext(user_id="alice"))

        assert result.ok
        assert result.data == {"cleaned": 3}
        assert await store.get_user("alice") is None
        for user_id in ("bob", "carol", "dave"):
            user = await store.get_user(user_id)
            assert "alice" not in user.connections
            assert "alice" not in user.pending_connections
            assert "alice" not in user.blocked_users

    async def test_cascade_failure_reports_dangling_ids(self, store, make_user, mocker):
        await make_user("alice")
        await make_user("bob", connections=["alice"])
        await make_user("carol", connections=["alice"])

        original = store.update_user

        async def flaky_update(user_id, **kwargs):
            if user_id == "carol":
                raise TransportError("down")
            return await original(user_id, **kwargs)

        mocker.patch.object(store, "update_user", side_effect=flaky_update)

        result = await ConnectionService(store).delete_account(ActorContext(user_id="alice"))

        assert result.kind == ErrorKind.PARTIAL_WRITE_FAILURE
        assert result.data == {"dangling": ["carol"]}
        assert (await store.get_user("bob")).connections == []

    async def test_cascade_ignores_notification_failures(self, store, broker, make_user, mocker):
        await make_user("alice")
        await make_user("bob", connections=["alice"])
        mocker.patch.object(broker, "publish", side_effect=TransportError("redis down"))

        result = await ConnectionService(store).delete_account(ActorContext(user_id="alice"))

        assert result.ok
        assert result.data == {"cleaned": 1}
        assert (await store.get_user("bob")).connections == []

    async def test_delete_missing_account(self, store):
        result = await ConnectionService(store).delete_account(ActorContext(user_id="ghost"))

        assert result.kind == ErrorKind.NOT_FOUND
