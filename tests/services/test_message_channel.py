"""
Unit tests for MessageChannel.
Tests snapshots, send gating, message edits, reactions, and stream teardown.
"""
import asyncio

import pytest

from profinder.core.errors import ErrorKind, TransportError
from profinder.core.relationship import RelationshipState
from profinder.schemas.message import DELETED_PLACEHOLDER
from profinder.services.connection_service import ConnectionService
from profinder.services.message_channel import MessageChannel, list_conversation_summaries


@pytest.mark.asyncio
class TestScenarios:
    """End-to-end conversation flows."""

    async def test_request_accept_message_seen_react(self, store, alice, bob, alice_actor, bob_actor):
        connections = ConnectionService(store)
        await connections.send_request(alice_actor, "bob")
        assert (await store.get_user("bob")).pending_connections == ["alice"]

        await connections.accept_request(bob_actor, "alice")
        assert (await store.get_user("alice")).connections == ["bob"]
        assert (await store.get_user("bob")).connections == ["alice"]
        assert (await store.get_user("bob")).pending_connections == []

        sent = await MessageChannel(store, alice_actor, "bob").send("hello")
        assert sent.ok

        bob_channel = MessageChannel(store, bob_actor, "alice")
        opened = await bob_channel.current_snapshot()
        assert opened.unread_count == 1
        assert [m.text for m in opened.messages] == ["hello"]
        assert opened.messages[0].sender_id == "alice"
        assert opened.messages[0].seen is False

        after = await bob_channel.current_snapshot()
        assert after.messages[0].seen is True
        assert after.unread_count == 0

        reacted = await bob_channel.react(sent.data.id, "👍")
        assert reacted.ok
        assert reacted.data.reactions == {"bob": "👍"}

    async def test_block_after_connect_hides_everything(self, store, connected, alice_actor, bob_actor):
        await MessageChannel(store, alice_actor, "bob").send("before the block")

        await ConnectionService(store).block(alice_actor, "bob")

        alice_view = await MessageChannel(store, alice_actor, "bob").current_snapshot()
        bob_view = await MessageChannel(store, bob_actor, "alice").current_snapshot()

        assert alice_view.state == RelationshipState.BLOCKED_BY_ME
        assert bob_view.state == RelationshipState.BLOCKED_BY_THEM
        assert alice_view.messages == [] and bob_view.messages == []
        assert not alice_view.can_send and not bob_view.can_send

        alice_send = await MessageChannel(store, alice_actor, "bob").send("hi")
        bob_send = await MessageChannel(store, bob_actor, "alice").send("hi")
        assert alice_send.reason == "blocked_by_me"
        assert bob_send.reason == "blocked_by_them"

        # Hidden, not deleted
        assert len(await store.query_messages("alice", "bob")) == 1

    async def test_mutually_blocked_pair_sees_nothing(self, store, connected, alice_actor, bob_actor):
        await MessageChannel(store, alice_actor, "bob").send("hi")
        await store.update_user("alice", add={"blocked_users": ["bob"]})
        await store.update_user("bob", add={"blocked_users": ["alice"]})

        snapshot = await MessageChannel(store, alice_actor, "bob").current_snapshot()
        result = await MessageChannel(store, alice_actor, "bob").send("hi")

        assert snapshot.state == RelationshipState.MUTUALLY_BLOCKED
        assert snapshot.messages == []
        assert result.reason == "blocked_by_me"


@pytest.mark.asyncio
class TestSend:
    """Send gating."""

    async def test_strangers_rejected_before_any_write(self, store, alice, bob, alice_actor, mocker):
        create = mocker.patch.object(store, "create_message")

        result = await MessageChannel(store, alice_actor, "bob").send("hi")

        assert result.kind == ErrorKind.PRECONDITION_FAILED
        assert result.reason == "not_connected"
        create.assert_not_called()

    async def test_pending_request_is_not_connected(self, store, alice, bob, alice_actor):
        await ConnectionService(store).send_request(alice_actor, "bob")

        result = await MessageChannel(store, alice_actor, "bob").send("hi")

        assert result.reason == "not_connected"

    async def test_empty_text_rejected(self, store, connected, alice_actor, mocker):
        create = mocker.patch.object(store, "create_message")

        result = await MessageChannel(store, alice_actor, "bob").send("   ")

        assert result.reason == "empty_text"
        create.assert_not_called()

    async def test_text_is_trimmed(self, store, connected, alice_actor):
        result = await MessageChannel(store, alice_actor, "bob").send("  hi there  ")

        assert result.data.text == "hi there"

    async def test_open_report_blocks_sending(self, store, connected, alice_actor):
        await ConnectionService(store).report(alice_actor, "bob", "Spam")

        result = await MessageChannel(store, alice_actor, "bob").send("hi")
        snapshot = await MessageChannel(store, alice_actor, "bob").current_snapshot()

        assert result.reason == "reported"
        assert snapshot.can_send is False

    async def test_report_gate_can_be_disabled(self, store, connected, alice_actor):
        await ConnectionService(store).report(alice_actor, "bob", "Spam")

        channel = MessageChannel(store, alice_actor, "bob", block_send_when_reported=False)
        result = await channel.send("hi")

        assert result.ok

    async def test_concurrent_sends_both_succeed(self, store, connected, alice_actor, bob_actor):
        results = await asyncio.gather(
            MessageChannel(store, alice_actor, "bob").send("from alice"),
            MessageChannel(store, bob_actor, "alice").send("from bob"),
        )

        assert all(result.ok for result in results)
        messages = await store.query_messages("alice", "bob")
        assert sorted(m.text for m in messages) == ["from alice", "from bob"]
        assert sorted(m.sequence_number for m in messages) == [1, 2]


@pytest.mark.asyncio
class TestMessageEdits:
    """Edit, soft delete, react and clear history."""

    async def test_edit_own_message(self, store, connected, alice_actor):
        channel = MessageChannel(store, alice_actor, "bob")
        sent = await channel.send("helo")

        result = await channel.edit(sent.data.id, " hello ")

        assert result.ok
        assert result.data.text == "hello"
        assert result.data.edited is True

    async def test_edit_by_non_sender_rejected(self, store, connected, alice_actor, bob_actor):
        sent = await MessageChannel(store, alice_actor, "bob").send("hi")

        result = await MessageChannel(store, bob_actor, "alice").edit(sent.data.id, "hacked")

        assert result.kind == ErrorKind.PRECONDITION_FAILED
        assert result.reason == "not_sender"

    async def test_delete_by_non_sender_rejected(self, store, connected, alice_actor, bob_actor):
        sent = await MessageChannel(store, alice_actor, "bob").send("hi")

        result = await MessageChannel(store, bob_actor, "alice").soft_delete(sent.data.id)

        assert result.reason == "not_sender"

    async def test_edit_allowed_after_block(self, store, connected, alice_actor):
        channel = MessageChannel(store, alice_actor, "bob")
        sent = await channel.send("hi")
        await ConnectionService(store).block(alice_actor, "bob")

        result = await channel.edit(sent.data.id, "hello")

        assert result.ok

    async def test_soft_delete_renders_placeholder(self, store, connected, alice_actor, bob_actor):
        channel = MessageChannel(store, alice_actor, "bob")
        sent = await channel.send("secret")

        result = await channel.soft_delete(sent.data.id)
        snapshot = await MessageChannel(store, bob_actor, "alice").current_snapshot()

        assert result.data.is_deleted is True
        assert snapshot.messages[0].text is None
        assert snapshot.messages[0].display_text == DELETED_PLACEHOLDER

    async def test_edit_deleted_message_rejected(self, store, connected, alice_actor):
        channel = MessageChannel(store, alice_actor, "bob")
        sent = await channel.send("hi")
        await channel.soft_delete(sent.data.id)

        result = await channel.edit(sent.data.id, "again")

        assert result.reason == "message_deleted"

    async def test_message_of_other_pair_is_not_found(self, store, connected, make_user, alice_actor):
        await make_user("carol", connections=["alice"])
        await store.update_user("alice", add={"connections": ["carol"]})
        other_pair = await MessageChannel(store, alice_actor, "carol").send("hi carol")

        channel = MessageChannel(store, alice_actor, "bob")

        assert (await channel.edit(other_pair.data.id, "x")).kind == ErrorKind.NOT_FOUND
        assert (await channel.react(other_pair.data.id, "👍")).kind == ErrorKind.NOT_FOUND

    async def test_reaction_is_overwritten_per_reactor(self, store, connected, alice_actor, bob_actor):
        sent = await MessageChannel(store, alice_actor, "bob").send("hi")
        bob_channel = MessageChannel(store, bob_actor, "alice")

        await bob_channel.react(sent.data.id, "👍")
        result = await bob_channel.react(sent.data.id, "😂")

        assert result.data.reactions == {"bob": "😂"}

    async def test_react_when_blocked_follows_setting(self, store, connected, alice_actor, bob_actor):
        sent = await MessageChannel(store, alice_actor, "bob").send("hi")
        await ConnectionService(store).block(alice_actor, "bob")

        denied = await MessageChannel(
            store, bob_actor, "alice", allow_react_when_blocked=False
        ).react(sent.data.id, "👍")
        allowed = await MessageChannel(
            store, bob_actor, "alice", allow_react_when_blocked=True
        ).react(sent.data.id, "👍")

        assert denied.kind == ErrorKind.PRECONDITION_FAILED
        assert allowed.ok

    async def test_clear_history(self, store, connected, alice_actor, bob_actor):
        await MessageChannel(store, alice_actor, "bob").send("one")
        await MessageChannel(store, bob_actor, "alice").send("two")

        result = await MessageChannel(store, alice_actor, "bob").clear_history()

        assert result.data == {"deleted": 2}
        assert await store.query_messages("alice", "bob") == []


@pytest.mark.asyncio
class TestSnapshots:
    """Snapshot processing and stream lifecycle."""

    async def test_mark_seen_failure_is_ignored(self, store, connected, alice_actor, bob_actor, mocker):
        await MessageChannel(store, alice_actor, "bob").send("hi")
        mocker.patch.object(store, "batch_write", side_effect=TransportError("down"))

        snapshot = await MessageChannel(store, bob_actor, "alice").current_snapshot()

        assert snapshot.unread_count == 1
        assert len(snapshot.messages) == 1

    async def test_stream_emits_on_new_message(self, store, broker, connected, alice_actor, bob_actor):
        stream = MessageChannel(store, bob_actor, "alice").snapshots()

        first = await stream.__anext__()
        assert first.messages == []
        assert broker.listener_count() == 3

        await MessageChannel(store, alice_actor, "bob").send("hello")
        second = await asyncio.wait_for(stream.__anext__(), timeout=2)

        assert [m.text for m in second.messages] == ["hello"]

        await stream.aclose()
        assert broker.listener_count() == 0

    async def test_stream_reflects_block(self, store, broker, connected, alice_actor, bob_actor):
        await MessageChannel(store, alice_actor, "bob").send("hello")
        stream = MessageChannel(store, bob_actor, "alice").snapshots()

        first = await stream.__anext__()
        assert len(first.messages) == 1

        await ConnectionService(store).block(alice_actor, "bob")

        # Drain until the block is visible
        snapshot = await asyncio.wait_for(stream.__anext__(), timeout=2)
        while snapshot.state != RelationshipState.BLOCKED_BY_THEM:
            snapshot = await asyncio.wait_for(stream.__anext__(), timeout=2)

        assert snapshot.messages == []
        await stream.aclose()

    async def test_cancelled_consumer_unsubscribes(self, store, broker, connected, bob_actor):
        received = []
        started = asyncio.Event()

        async def consume():
            async for snapshot in MessageChannel(store, bob_actor, "alice").snapshots():
                received.append(snapshot)
                started.set()

        task = asyncio.create_task(consume())
        await asyncio.wait_for(started.wait(), timeout=2)
        assert broker.listener_count() == 3

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert broker.listener_count() == 0
        assert len(received) == 1

    async def test_stream_is_restartable(self, store, broker, connected, bob_actor):
        channel = MessageChannel(store, bob_actor, "alice")

        for _ in range(2):
            stream = channel.snapshots()
            await stream.__anext__()
            await stream.aclose()

        assert broker.listener_count() == 0

    async def test_unopened_stream_does_not_subscribe(self, store, broker, connected, bob_actor):
        MessageChannel(store, bob_actor, "alice").snapshots()

        assert broker.listener_count() == 0


@pytest.mark.asyncio
class TestConversationSummaries:
    """Conversation list."""

    async def test_preview_and_unread(self, store, connected, alice_actor, bob_actor):
        await MessageChannel(store, alice_actor, "bob").send("one")
        await MessageChannel(store, alice_actor, "bob").send("two")

        summaries = await list_conversation_summaries(store, bob_actor)

        assert len(summaries) == 1
        assert summaries[0].other_user_id == "alice"
        assert summaries[0].last_message == "two"
        assert summaries[0].unread_count == 2

    async def test_blocked_pair_has_no_preview(self, store, connected, alice_actor, bob_actor):
        await MessageChannel(store, alice_actor, "bob").send("one")
        await ConnectionService(store).block(bob_actor, "alice")

        summaries = await list_conversation_summaries(store, bob_actor)

        assert summaries[0].last_message is None
        assert summaries[0].unread_count == 0
        assert summaries[0].state == RelationshipState.BLOCKED_BY_ME
