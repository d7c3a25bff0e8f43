import asyncio

from expert_feed.services import SocketIOChannel
from expert_feed.services.realtime_channel import (
    QUESTION_CREATED,
    ROOM_JOIN,
    ROOM_LEAVE,
)


class FakeSocketIOClient:
    """Mimics the parts of socketio.AsyncClient the channel uses"""

    def __init__(self):
        self.connected = False
        self.handlers = {}
        self.emitted = []
        self.connect_kwargs = None

    def on(self, event, handler=None):
        self.handlers[event] = handler

    async def connect(self, url, **kwargs):
        self.connected = True
        self.connect_kwargs = {"url": url, **kwargs}
        await self.handlers["connect"]()

    async def disconnect(self):
        self.connected = False

    async def emit(self, event, data=None):
        self.emitted.append((event, data))


def make_channel(token=""):
    sio = FakeSocketIOClient()
    return SocketIOChannel("http://marketplace.test", token=token, client=sio), sio


def test_open_connects_with_token():
    channel, sio = make_channel(token="secret")

    asyncio.run(channel.open())

    assert channel.is_open
    assert sio.connect_kwargs["url"] == "http://marketplace.test"
    assert sio.connect_kwargs["auth"] == {"token": "secret"}


def test_join_and_leave_emit_room_messages_once():
    channel, sio = make_channel()

    async def run():
        await channel.open()
        await channel.join("tag:react")
        await channel.join("tag:react")
        await channel.leave("tag:react")
        await channel.leave("tag:react")

    asyncio.run(run())

    assert sio.emitted == [(ROOM_JOIN, "tag:react"), (ROOM_LEAVE, "tag:react")]
    assert channel.rooms == set()


def test_blank_topic_is_not_joined():
    channel, sio = make_channel()

    asyncio.run(channel.join("   "))

    assert channel.rooms == set()


def test_rooms_joined_while_closed_are_sent_on_connect():
    channel, sio = make_channel()

    async def run():
        await channel.join("category:design")
        await channel.join("tag:react")
        assert sio.emitted == []
        await channel.open()

    asyncio.run(run())

    assert sio.emitted == [(ROOM_JOIN, "category:design"), (ROOM_JOIN, "tag:react")]


def test_handlers_receive_events_and_can_be_removed():
    channel, sio = make_channel()
    received = []

    def handler(payload):
        received.append(payload)

    channel.on(QUESTION_CREATED, handler)
    sio.handlers[QUESTION_CREATED]({"id": "q1"})
    channel.off(QUESTION_CREATED, handler)
    sio.handlers[QUESTION_CREATED]({"id": "q2"})

    assert received == [{"id": "q1"}]


def test_failing_handler_does_not_stop_others():
    channel, sio = make_channel()
    received = []

    def broken(payload):
        raise ValueError("bad handler")

    channel.on(QUESTION_CREATED, broken)
    channel.on(QUESTION_CREATED, received.append)
    sio.handlers[QUESTION_CREATED]({"id": "q1"})

    assert received == [{"id": "q1"}]


def test_close_disconnects_and_forgets_rooms():
    channel, sio = make_channel()

    async def run():
        await channel.open()
        await channel.join("tag:react")
        await channel.close()

    asyncio.run(run())

    assert not channel.is_open
    assert channel.rooms == set()
