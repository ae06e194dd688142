"""Tests for broadcast fan-out."""

from planning_poker.services.broadcast import SESSION_UPDATED, BroadcastCoordinator
from planning_poker.services.registry import SessionRegistry
from tests.conftest import BrokenSubscriber, RecordingSubscriber


def test_publish_session_reaches_every_room_member() -> None:
    registry = SessionRegistry()
    host, alice = RecordingSubscriber(), RecordingSubscriber()
    session_id, _ = registry.create_session("host", "Host", host)
    registry.join_session("alice", session_id, "Alice", alice)
    broadcaster = BroadcastCoordinator(registry)

    delivered = broadcaster.publish_session(session_id)

    assert delivered == 2
    assert len(host.payloads(SESSION_UPDATED)) == 1
    assert len(alice.payloads(SESSION_UPDATED)) == 1
    assert host.last(SESSION_UPDATED)["isHost"] is True
    assert alice.last(SESSION_UPDATED)["isHost"] is False
    assert len(alice.last(SESSION_UPDATED)["participants"]) == 2


def test_publish_session_reflects_state_at_publish_time() -> None:
    registry = SessionRegistry()
    host = RecordingSubscriber()
    session_id, session = registry.create_session("host", "Host", host)
    broadcaster = BroadcastCoordinator(registry)

    session.current_story = "Story A"
    broadcaster.publish_session(session_id)

    assert host.last(SESSION_UPDATED)["currentStory"] == "Story A"


def test_failed_delivery_does_not_block_other_members() -> None:
    registry = SessionRegistry()
    alice = RecordingSubscriber()
    session_id, _ = registry.create_session("host", "Host", BrokenSubscriber())
    registry.join_session("alice", session_id, "Alice", alice)
    broadcaster = BroadcastCoordinator(registry)

    delivered = broadcaster.publish_session(session_id)

    assert delivered == 1
    assert alice.payloads(SESSION_UPDATED)


def test_publish_for_missing_session_is_noop() -> None:
    broadcaster = BroadcastCoordinator(SessionRegistry())

    assert broadcaster.publish_session("missing") == 0
    assert broadcaster.publish("missing", "meet-link", {"meetLink": None}) == 0


def test_publish_sends_same_payload_to_room() -> None:
    registry = SessionRegistry()
    host, alice = RecordingSubscriber(), RecordingSubscriber()
    session_id, _ = registry.create_session("host", "Host", host)
    registry.join_session("alice", session_id, "Alice", alice)
    broadcaster = BroadcastCoordinator(registry)

    broadcaster.publish(session_id, "meet-link", {"meetLink": "https://m.test"})

    expected = [("meet-link", {"meetLink": "https://m.test"})]
    assert host.events == alice.events == expected
