"""
Chat feed tests: polling overlap guard and optimistic delete with rollback
"""
import asyncio
import random

import pytest

from voterdesk.client.api import ApiError, NetworkError
from voterdesk.client.chat_feed import ChatFeed
from voterdesk.client.notices import NoticeBoard


def message(n: int) -> dict:
    return {"id": f"m{n}", "user_id": "u1", "user_name": "Ali", "content": f"msg {n}", "created_at": n}


class FakeClient:
    def __init__(self, messages=None):
        self.server = list(messages or [])
        self.fetches = 0
        self.gate = None
        self.delete_error = None
        self.list_error = None

    async def list_messages(self):
        self.fetches += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.list_error is not None:
            raise self.list_error
        return list(self.server)

    async def send_message(self, content):
        msg = message(len(self.server) + 1)
        msg["content"] = content
        self.server.append(msg)
        return msg

    async def delete_message(self, message_id):
        if self.delete_error is not None:
            raise self.delete_error
        self.server = [m for m in self.server if m["id"] != message_id]


async def test_refresh_replaces_local_list():
    client = FakeClient([message(1), message(2)])
    feed = ChatFeed(client)
    assert await feed.refresh() is True
    assert [m["id"] for m in feed.messages] == ["m1", "m2"]


async def test_tick_skipped_while_fetch_outstanding():
    client = FakeClient([message(1)])
    client.gate = asyncio.Event()
    feed = ChatFeed(client)

    first = asyncio.create_task(feed.refresh())
    await asyncio.sleep(0)
    assert await feed.refresh() is False
    assert client.fetches == 1

    client.gate.set()
    assert await first is True
    assert await feed.refresh() is True
    assert client.fetches == 2


async def test_missing_table_pauses_polling_until_retry():
    client = FakeClient([message(1)])
    client.list_error = ApiError(503, {"message": "x", "details": {"kind": "missing_table"}})
    feed = ChatFeed(client, interval=0.01)
    feed.start()
    await asyncio.sleep(0.05)
    await feed.stop()
    assert feed.unavailable is not None
    assert client.fetches == 1

    client.list_error = None
    assert await feed.retry() is True
    assert feed.unavailable is None
    assert feed.messages == [message(1)]


async def test_polling_loop_fetches_repeatedly_and_stops():
    client = FakeClient([message(1)])
    feed = ChatFeed(client, interval=0.01)
    feed.start()
    await asyncio.sleep(0.05)
    await feed.stop()
    assert client.fetches >= 2
    assert not feed.running
    fetches = client.fetches
    await asyncio.sleep(0.03)
    assert client.fetches == fetches


async def test_polling_survives_unexpected_errors():
    client = FakeClient([message(1)])
    client.list_error = ValueError("malformed body")
    feed = ChatFeed(client, interval=0.01)
    feed.start()
    await asyncio.sleep(0.05)
    assert feed.running
    assert client.fetches >= 2

    client.list_error = None
    await asyncio.sleep(0.03)
    await feed.stop()
    assert feed.messages == [message(1)]


async def test_send_trims_and_refreshes():
    client = FakeClient()
    feed = ChatFeed(client)
    assert await feed.send("   ") is False
    assert await feed.send("  hello ") is True
    assert [m["content"] for m in feed.messages] == ["hello"]


async def test_successful_delete_keeps_optimistic_state():
    client = FakeClient([message(1), message(2)])
    feed = ChatFeed(client)
    await feed.refresh()
    assert await feed.delete("m1") is True
    assert [m["id"] for m in feed.messages] == ["m2"]


@pytest.mark.parametrize("seed", range(10))
async def test_failed_delete_restores_previous_list(seed):
    rng = random.Random(seed)
    messages = [message(n) for n in range(rng.randint(1, 30))]
    client = FakeClient(messages)
    client.delete_error = rng.choice([
        ApiError(500, {"message": "boom"}),
        NetworkError("connection reset"),
    ])
    feed = ChatFeed(client, notices=NoticeBoard(ttl=60))
    await feed.refresh()
    before = {m["id"] for m in feed.messages}

    target = rng.choice(messages)["id"]
    assert await feed.delete(target) is False
    assert {m["id"] for m in feed.messages} == before
    assert feed.notices.active()[0].level == "error"


async def test_permission_refusal_flags_permission_error():
    client = FakeClient([message(1)])
    client.delete_error = ApiError(403, {"code": "NOT_AUTHORIZED", "message": "You can only delete your own messages"})
    feed = ChatFeed(client)
    await feed.refresh()
    assert await feed.delete("m1") is False
    assert feed.permission_error is True
    assert feed.messages == [message(1)]
