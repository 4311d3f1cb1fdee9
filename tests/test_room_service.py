"""Tests for RoomService orchestration: access rules, assistant enrichment, ordering."""
import asyncio

import pytest

from backend.core.errors import Forbidden, InvalidArgument, NotFound, Unavailable
from backend.models.models import User
from backend.services.assistant import AssistantBridge
from backend.services.publisher import LocalPublisher
from backend.services.room_service import RoomService
from conftest import FakeReplyGenerator, FakeSubscriber


@pytest.mark.asyncio
async def test_team_room_scenario(service, directory, message_log, u1, u2):
    room = await service.create_room(u1, "abc123", "Team")
    assert room.members == ["u1"]

    await service.join_room(u2, "abc123")
    assert directory.find_by_code("abc123").members == ["u1", "u2"]

    await service.post_message(u1, "abc123", "hello")
    history = await service.get_history(u2, "abc123")
    assert [(m.author, m.body) for m in history] == [("alice", "hello")]

    with pytest.raises(Forbidden):
        await service.delete_room(u2, "abc123")
    assert [m.body for m in await service.get_history(u1, "abc123")] == ["hello"]
    assert directory.find_by_code("abc123").code == "abc123"


@pytest.mark.asyncio
async def test_delete_purges_history_and_notifies_subscribers(service, hub, u1):
    await service.create_room(u1, "abc123", "Team")
    await service.post_message(u1, "abc123", "hello")
    sub = FakeSubscriber()
    hub.subscribe("abc123", sub)

    await service.delete_room(u1, "abc123")

    with pytest.raises(NotFound):
        await service.validate_room_access(u1, "abc123")
    assert await service.get_history(u1, "abc123") == []
    assert sub.of_type("room_deleted") == [{"type": "room_deleted", "room_code": "abc123"}]
    assert hub.subscriber_count("abc123") == 0


@pytest.mark.asyncio
async def test_join_and_post_fail_after_delete(service, u1, u2):
    await service.create_room(u1, "abc123", "Team")
    await service.delete_room(u1, "abc123")

    with pytest.raises(NotFound):
        await service.join_room(u2, "abc123")
    with pytest.raises(NotFound):
        await service.post_message(u2, "abc123", "anyone?")


@pytest.mark.asyncio
async def test_non_member_may_post_with_room_code(service, u1, u2):
    await service.create_room(u1, "abc123", "Team")

    await service.post_message(u2, "abc123", "drive-by")

    [msg] = await service.get_history(u1, "abc123")
    assert msg.author == "bob"


@pytest.mark.asyncio
async def test_post_validation(service, u1):
    await service.create_room(u1, "abc123", "Team")

    with pytest.raises(InvalidArgument):
        await service.post_message(u1, "abc123", "")
    with pytest.raises(InvalidArgument):
        await service.post_message(u1, "", "hello")
    with pytest.raises(NotFound):
        await service.post_message(u1, "missing", "hello")
    with pytest.raises(InvalidArgument):
        await service.get_history(u1, "")

    spaces = await service.post_message(u1, "abc123", "   ")
    assert spaces.body == "   "


@pytest.mark.asyncio
async def test_poster_receives_own_message_only_through_subscription(service, hub, u1):
    await service.create_room(u1, "abc123", "Team")
    poster = FakeSubscriber()
    hub.subscribe("abc123", poster)

    message = await service.post_message(u1, "abc123", "hello")

    [event] = poster.of_type("new_message")
    assert event["room_code"] == "abc123"
    assert event["message"]["id"] == message.id
    assert event["message"]["body"] == "hello"


@pytest.mark.asyncio
async def test_create_room_is_announced(service, hub, u1):
    lobby = FakeSubscriber()
    hub.connect(lobby)

    await service.create_room(u1, "abc123", "Team")

    assert lobby.events == [{"type": "room_created", "room": {"code": "abc123", "name": "Team"}}]


@pytest.mark.asyncio
async def test_assistant_reply_stored_with_message(service, reply_generator, u1):
    await service.create_room(u1, "abc123", "Team")

    await service.post_message(u1, "abc123", "plain message")
    await service.post_message(u1, "abc123", "Need /HELP with this")

    plain, helped = await service.get_history(u1, "abc123")
    assert plain.assistant_reply is None
    assert helped.assistant_reply == "Here to help"
    assert reply_generator.calls == ["Need /HELP with this"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "generator",
    [
        FakeReplyGenerator(delay=5.0),
        FakeReplyGenerator(error=Unavailable("down")),
        FakeReplyGenerator(error=RuntimeError("boom")),
    ],
    ids=["timeout", "unavailable", "unexpected"],
)
async def test_assistant_failure_never_fails_post(directory, message_log, hub, u1, generator):
    service = RoomService(
        directory=directory,
        message_log=message_log,
        publisher=LocalPublisher(hub),
        assistant=AssistantBridge(generator, timeout=0.05),
    )
    await service.create_room(u1, "abc123", "Team")

    message = await service.post_message(u1, "abc123", "/help me")

    assert message.assistant_reply is None
    assert [m.body for m in await service.get_history(u1, "abc123")] == ["/help me"]


@pytest.mark.asyncio
async def test_publish_order_matches_log_order_under_concurrency(service, hub, u1):
    await service.create_room(u1, "abc123", "Team")
    sub = FakeSubscriber()
    hub.subscribe("abc123", sub)

    await asyncio.gather(*(service.post_message(u1, "abc123", f"m{i}") for i in range(25)))

    logged = [m.id for m in await service.get_history(u1, "abc123")]
    delivered = [e["message"]["id"] for e in sub.of_type("new_message")]
    assert delivered == logged
    assert service.message_counter == 25


@pytest.mark.asyncio
async def test_delete_while_assistant_is_thinking_leaves_no_orphan(directory, message_log, hub, u1):
    service = RoomService(
        directory=directory,
        message_log=message_log,
        publisher=LocalPublisher(hub),
        assistant=AssistantBridge(FakeReplyGenerator(delay=0.05), timeout=1.0),
    )
    await service.create_room(u1, "abc123", "Team")

    post = asyncio.create_task(service.post_message(u1, "abc123", "/help slow"))
    await asyncio.sleep(0)
    await service.delete_room(u1, "abc123")

    with pytest.raises(NotFound):
        await post
    assert message_log.list_by_room("abc123") == []


@pytest.mark.asyncio
async def test_post_in_flight_across_delete_and_recreate_is_rejected(directory, message_log, hub, u1):
    service = RoomService(
        directory=directory,
        message_log=message_log,
        publisher=LocalPublisher(hub),
        assistant=AssistantBridge(FakeReplyGenerator(delay=0.05), timeout=1.0),
    )
    carol = User(id="u3", display_name="carol")
    await service.create_room(u1, "abc123", "Old team")
    newcomer = FakeSubscriber()

    post = asyncio.create_task(service.post_message(u1, "abc123", "/help for the old room"))
    await asyncio.sleep(0)
    await service.delete_room(u1, "abc123")
    await service.create_room(carol, "abc123", "New team")
    hub.subscribe("abc123", newcomer)

    with pytest.raises(NotFound):
        await post
    assert await service.get_history(carol, "abc123") == []
    assert newcomer.of_type("new_message") == []


@pytest.mark.asyncio
async def test_slow_subscriber_only_holds_up_its_own_room(service, hub, u1):
    await service.create_room(u1, "slow", "Slow")
    await service.create_room(u1, "fast", "Fast")
    release = asyncio.Event()
    stuck = FakeSubscriber(gate=release)
    listener = FakeSubscriber()
    hub.subscribe("slow", stuck)
    hub.subscribe("fast", listener)

    first = asyncio.create_task(service.post_message(u1, "slow", "one"))
    second = asyncio.create_task(service.post_message(u1, "slow", "two"))
    await asyncio.sleep(0)

    await asyncio.wait_for(service.post_message(u1, "fast", "unaffected"), timeout=1.0)
    assert [e["message"]["body"] for e in listener.of_type("new_message")] == ["unaffected"]
    assert not first.done() and not second.done()

    release.set()
    await asyncio.gather(first, second)
    assert [e["message"]["body"] for e in stuck.of_type("new_message")] == ["one", "two"]


@pytest.mark.asyncio
async def test_publisher_failure_does_not_fail_post(directory, message_log, u1):
    class BrokenPublisher:
        async def publish(self, room_code, event):
            raise ConnectionError("relay down")

        async def announce(self, event):
            raise ConnectionError("relay down")

    service = RoomService(directory, message_log, BrokenPublisher(), AssistantBridge(None))
    await service.create_room(u1, "abc123", "Team")

    await service.post_message(u1, "abc123", "still stored")

    assert [m.body for m in message_log.list_by_room("abc123")] == ["still stored"]


@pytest.mark.asyncio
async def test_list_accessible_rooms(service, u1, u2):
    await service.create_room(u1, "r1", "one")
    await service.create_room(u2, "r2", "two")
    await service.join_room(u1, "r2")
    await service.join_room(u1, "r2")

    rooms = await service.list_accessible_rooms(u1)
    assert sorted(r.code for r in rooms) == ["r1", "r2"]
    assert await service.list_accessible_rooms(User(id="u9", display_name="zed")) == []
