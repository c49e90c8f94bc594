"""Tests for RedisPubSub (generic pub/sub layer).

All tests use a mock Redis client — no real Redis instance required.
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from notihub.redis.pubsub import RedisPubSub

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_mock_redis() -> MagicMock:
    """Return a mock redis.asyncio.Redis client."""
    redis = MagicMock()
    redis.publish = AsyncMock()
    redis.pubsub = MagicMock()
    return redis


def _make_mock_pubsub(messages: list[dict] | None = None, *, block: bool = False) -> MagicMock:
    """Return a mock PubSub that yields *messages* from ``listen()``.

    Each entry in *messages* should look like:
        {"type": "message", "data": '{"key": "val"}'}

    If *block* is True the async generator will hang forever after
    exhausting *messages*, which keeps the listener task alive so that
    cancellation semantics can be tested.
    """
    pubsub = MagicMock()
    pubsub.subscribe = AsyncMock()
    pubsub.unsubscribe = AsyncMock()
    pubsub.close = AsyncMock()

    async def _listen():
        for msg in messages or []:
            yield msg
        if block:
            await asyncio.Event().wait()

    pubsub.listen = _listen
    return pubsub


PREFIX = "notihub:test:"


# ---------------------------------------------------------------------------
# Tests: subscribe
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_subscribe_starts_listener():
    """subscribe() should start a background listener task for the key."""
    redis = _make_mock_redis()
    redis.pubsub.return_value = _make_mock_pubsub()

    ps = RedisPubSub(redis, channel_prefix=PREFIX)
    ps.subscribe("key_1", MagicMock())

    assert "key_1" in ps._listener_tasks
    assert isinstance(ps._listener_tasks["key_1"], asyncio.Task)

    await ps.close()


@pytest.mark.asyncio
async def test_subscribe_reuses_listener_for_same_key():
    """A second subscribe for the same key should NOT create a new listener task."""
    redis = _make_mock_redis()
    redis.pubsub.return_value = _make_mock_pubsub()

    ps = RedisPubSub(redis, channel_prefix=PREFIX)
    ps.subscribe("key_1", MagicMock())
    first_task = ps._listener_tasks["key_1"]

    ps.subscribe("key_1", MagicMock())
    assert ps._listener_tasks["key_1"] is first_task

    await ps.close()


def test_subscribe_requires_running_loop():
    ps = RedisPubSub(_make_mock_redis(), channel_prefix=PREFIX)
    with pytest.raises(RuntimeError):
        ps.subscribe("key_1", MagicMock())

    assert "key_1" not in ps._subscribers
    assert ps._listener_tasks == {}


# ---------------------------------------------------------------------------
# Tests: unsubscribe
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_unsubscribe_cancels_listener_when_last_subscriber_leaves():
    """When the last subscriber unsubscribes, the listener task should be cancelled."""
    redis = _make_mock_redis()
    redis.pubsub.return_value = _make_mock_pubsub(block=True)

    ps = RedisPubSub(redis, channel_prefix=PREFIX)
    callback = MagicMock()
    ps.subscribe("key_1", callback)

    await asyncio.sleep(0)

    task = ps._listener_tasks["key_1"]

    ps.unsubscribe("key_1", callback)
    assert "key_1" not in ps._listener_tasks

    await asyncio.gather(task, return_exceptions=True)
    assert task.cancelled()

    await ps.close()


@pytest.mark.asyncio
async def test_unsubscribe_keeps_listener_when_subscribers_remain():
    """If other subscribers remain, the listener task should stay alive."""
    redis = _make_mock_redis()
    redis.pubsub.return_value = _make_mock_pubsub()

    ps = RedisPubSub(redis, channel_prefix=PREFIX)
    first = MagicMock()
    ps.subscribe("key_1", first)
    ps.subscribe("key_1", MagicMock())

    ps.unsubscribe("key_1", first)
    assert "key_1" in ps._listener_tasks

    await ps.close()


@pytest.mark.asyncio
async def test_unsubscribe_unknown_callback_is_noop():
    ps = RedisPubSub(_make_mock_redis(), channel_prefix=PREFIX)
    ps.unsubscribe("key_1", MagicMock())
    ps.unsubscribe("key_1", MagicMock())


# ---------------------------------------------------------------------------
# Tests: publish
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_publish_calls_redis_publish():
    """publish() should fire-and-forget a Redis PUBLISH with prefixed channel."""
    redis = _make_mock_redis()
    ps = RedisPubSub(redis, channel_prefix=PREFIX)

    ps.publish("key_1", {"type": "event"})

    await asyncio.sleep(0)

    redis.publish.assert_awaited_once_with(
        f"{PREFIX}key_1",
        json.dumps({"type": "event"}),
    )

    await ps.close()


def test_publish_without_running_loop_does_not_raise():
    redis = _make_mock_redis()
    ps = RedisPubSub(redis, channel_prefix=PREFIX)

    ps.publish("key_1", {"type": "event"})

    redis.publish.assert_not_called()


def test_publish_rejects_unserializable_payload():
    ps = RedisPubSub(_make_mock_redis(), channel_prefix=PREFIX)
    with pytest.raises(TypeError):
        ps.publish("key_1", object())


@pytest.mark.asyncio
async def test_publish_failure_is_logged_not_raised():
    redis = _make_mock_redis()
    redis.publish = AsyncMock(side_effect=ConnectionError("redis down"))
    ps = RedisPubSub(redis, channel_prefix=PREFIX)

    ps.publish("key_1", {"type": "event"})
    await asyncio.sleep(0)

    redis.publish.assert_awaited_once()
    await ps.close()


# ---------------------------------------------------------------------------
# Tests: listener
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_listener_dispatches_messages_and_skips_invalid_json():
    redis = _make_mock_redis()
    redis.pubsub.return_value = _make_mock_pubsub(
        [
            {"type": "subscribe", "data": 1},
            {"type": "message", "data": "not json"},
            {"type": "message", "data": json.dumps({"value": 1})},
            {"type": "message", "data": json.dumps("plain string")},
        ]
    )

    ps = RedisPubSub(redis, channel_prefix=PREFIX)
    received: list = []
    ps.subscribe("key_1", received.append)

    await asyncio.gather(ps._listener_tasks["key_1"])

    assert received == [{"value": 1}, "plain string"]
    redis.pubsub.return_value.subscribe.assert_awaited_once_with(f"{PREFIX}key_1")
    redis.pubsub.return_value.unsubscribe.assert_awaited_once_with(f"{PREFIX}key_1")

    await ps.close()


# ---------------------------------------------------------------------------
# Tests: _dispatch_local
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_dispatch_local_fans_out_to_all_callbacks():
    """_dispatch_local should hand the message to every local callback for the key."""
    redis = _make_mock_redis()
    redis.pubsub.return_value = _make_mock_pubsub()

    ps = RedisPubSub(redis, channel_prefix=PREFIX)
    first, second = MagicMock(), MagicMock()
    ps.subscribe("key_1", first)
    ps.subscribe("key_1", second)

    msg = {"type": "test", "value": 42}
    ps._dispatch_local("key_1", msg)

    first.assert_called_once_with(msg)
    second.assert_called_once_with(msg)

    await ps.close()


@pytest.mark.asyncio
async def test_dispatch_local_does_not_leak_across_keys():
    """Messages dispatched for key_a should not reach key_b callbacks."""
    redis = _make_mock_redis()
    redis.pubsub.return_value = _make_mock_pubsub()

    ps = RedisPubSub(redis, channel_prefix=PREFIX)
    callback_a, callback_b = MagicMock(), MagicMock()
    ps.subscribe("key_a", callback_a)
    ps.subscribe("key_b", callback_b)

    ps._dispatch_local("key_a", {"type": "test"})
    callback_a.assert_called_once()
    callback_b.assert_not_called()

    await ps.close()


@pytest.mark.asyncio
async def test_dispatch_local_survives_failing_callback():
    redis = _make_mock_redis()
    redis.pubsub.return_value = _make_mock_pubsub()

    ps = RedisPubSub(redis, channel_prefix=PREFIX)
    healthy = MagicMock()
    ps.subscribe("key_1", MagicMock(side_effect=RuntimeError("boom")))
    ps.subscribe("key_1", healthy)

    ps._dispatch_local("key_1", {"type": "test"})
    healthy.assert_called_once_with({"type": "test"})

    await ps.close()


# ---------------------------------------------------------------------------
# Tests: close
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_close_cancels_all_listeners_and_clears_state():
    """close() should cancel every listener task and empty subscriber maps."""
    redis = _make_mock_redis()
    redis.pubsub.return_value = _make_mock_pubsub(block=True)

    ps = RedisPubSub(redis, channel_prefix=PREFIX)
    ps.subscribe("key_1", MagicMock())
    ps.subscribe("key_2", MagicMock())

    await asyncio.sleep(0)

    task_1 = ps._listener_tasks["key_1"]
    task_2 = ps._listener_tasks["key_2"]

    await ps.close()

    await asyncio.gather(task_1, task_2, return_exceptions=True)
    assert task_1.cancelled()
    assert task_2.cancelled()
    assert len(ps._listener_tasks) == 0
    assert len(ps._subscribers) == 0


# ---------------------------------------------------------------------------
# Tests: prefix isolation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_different_prefixes_do_not_interfere():
    """Two RedisPubSub instances with different prefixes use separate channels."""
    redis = _make_mock_redis()

    ps_a = RedisPubSub(redis, channel_prefix="prefix_a:")
    ps_b = RedisPubSub(redis, channel_prefix="prefix_b:")

    ps_a.publish("key_1", {"from": "a"})
    ps_b.publish("key_1", {"from": "b"})

    await asyncio.sleep(0)

    channels = {call.args[0] for call in redis.publish.await_args_list}
    assert channels == {"prefix_a:key_1", "prefix_b:key_1"}

    await ps_a.close()
    await ps_b.close()
