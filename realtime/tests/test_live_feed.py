import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from realtime.live_feed import FeedState, LiveNotificationFeed

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def row(i, user="u1", is_read=False, minutes=0):
    return {"id": f"n{i}", "user_id": user, "is_read": is_read, "read_at": None, "created_at": (T0 + timedelta(minutes=minutes)).isoformat()}


class FakeSubscription:
    def __init__(self, user_id):
        self.user_id = user_id
        self.active = True

    async def unsubscribe(self):
        self.active = False


class FakeBackend:
    def __init__(self, items=None, unread=0):
        self.items = items or []
        self.unread = unread
        self.subscriptions = []
        self.gate = None
        self.subscribe_gates = {}
        self.fail = False

    async def fetch_page(self, user_id, offset, limit):
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise ConnectionError("backend down")
        return self.items[offset : offset + limit]

    async def fetch_unread_count(self, user_id):
        if self.fail:
            raise ConnectionError("backend down")
        return self.unread

    async def subscribe(self, user_id, feed):
        gate = self.subscribe_gates.get(user_id)
        if gate is not None:
            await gate.wait()
        sub = FakeSubscription(user_id)
        self.subscriptions.append(sub)
        return sub

    def feed(self, page_size=10):
        return LiveNotificationFeed(fetch_page=self.fetch_page, fetch_unread_count=self.fetch_unread_count, subscribe=self.subscribe, page_size=page_size)

    @property
    def active(self):
        return [s for s in self.subscriptions if s.active]


@pytest.mark.asyncio
class TestLiveNotificationFeed:
    async def test_mount_loads_first_page_and_count(self):
        backend = FakeBackend(items=[row(i) for i in range(15)], unread=7)
        feed = backend.feed()
        assert feed.state is FeedState.IDLE

        await feed.mount("u1")

        assert feed.state is FeedState.READY
        assert len(feed.notifications) == 10
        assert feed.unread_count == 7
        assert len(backend.active) == 1

    async def test_insert_at_capacity_keeps_ten(self):
        backend = FakeBackend(items=[row(i) for i in range(10)], unread=2)
        feed = backend.feed()
        await feed.mount("u1")

        assert feed.handle_insert(row(99, minutes=30)) is True

        assert len(feed.notifications) == 10
        assert feed.notifications[0]["id"] == "n99"
        assert feed.unread_count == 3

    async def test_duplicate_insert_ignored(self):
        backend = FakeBackend(items=[row(1)], unread=1)
        feed = backend.feed()
        await feed.mount("u1")

        assert feed.handle_insert(row(1)) is False
        assert feed.unread_count == 1

    async def test_insert_for_other_user_ignored(self):
        backend = FakeBackend()
        feed = backend.feed()
        await feed.mount("u1")

        assert feed.handle_insert(row(1, user="u2")) is False
        assert feed.notifications == []

    async def test_local_read_then_push_echo_counts_once(self):
        backend = FakeBackend(items=[row(1), row(2)], unread=2)
        feed = backend.feed()
        await feed.mount("u1")

        assert feed.mark_as_read("n1") is True
        feed.handle_update({**row(1), "is_read": True}, {"id": "n1", "is_read": False})

        assert feed.unread_count == 1
        assert feed.notifications[0]["is_read"] is True

    async def test_push_echo_then_local_read_counts_once(self):
        backend = FakeBackend(items=[row(1), row(2)], unread=2)
        feed = backend.feed()
        await feed.mount("u1")

        feed.handle_update({**row(1), "is_read": True}, {"id": "n1", "is_read": False})
        assert feed.mark_as_read("n1") is False

        assert feed.unread_count == 1

    async def test_mark_all_then_echoes_are_noops(self):
        # 목록 밖(11번째 이후)의 안 읽은 알림도 워터마크로 처리된다
        backend = FakeBackend(items=[row(i) for i in range(10)], unread=12)
        feed = backend.feed()
        await feed.mount("u1")

        assert feed.mark_all_as_read() is True
        feed.handle_update({**row(3), "is_read": True}, {"id": "n3", "is_read": False})
        feed.handle_update({**row(42, minutes=-10), "is_read": True}, {"id": "n42", "is_read": False})

        assert feed.unread_count == 0
        assert all(n["is_read"] for n in feed.notifications)

    async def test_update_outside_list_decrements_on_transition(self):
        backend = FakeBackend(items=[row(1)], unread=3)
        feed = backend.feed()
        await feed.mount("u1")

        feed.handle_update({**row(50), "is_read": True}, {"id": "n50", "is_read": False})
        feed.handle_update({**row(50), "is_read": True}, {"id": "n50", "is_read": False})

        assert feed.unread_count == 2

    async def test_unread_never_negative(self):
        backend = FakeBackend(items=[row(1)], unread=0)
        feed = backend.feed()
        await feed.mount("u1")

        feed.handle_update({**row(1), "is_read": True}, {"id": "n1", "is_read": False})

        assert feed.unread_count == 0

    async def test_events_during_loading_are_replayed(self):
        backend = FakeBackend(items=[row(1)], unread=1)
        backend.gate = asyncio.Event()
        feed = backend.feed()

        task = asyncio.create_task(feed.mount("u1"))
        await asyncio.sleep(0)
        assert feed.state is FeedState.LOADING
        assert feed.handle_insert(row(2, minutes=1)) is False
        backend.gate.set()
        await task

        assert [n["id"] for n in feed.notifications] == ["n2", "n1"]
        assert feed.unread_count == 2

    async def test_load_failure_degrades_to_empty_ready(self):
        backend = FakeBackend(items=[row(1)], unread=1)
        backend.fail = True
        feed = backend.feed()

        await feed.mount("u1")

        assert feed.state is FeedState.READY
        assert feed.notifications == []
        assert feed.unread_count == 0

    async def test_unmount_releases_subscription(self):
        backend = FakeBackend()
        feed = backend.feed()
        await feed.mount("u1")

        await feed.unmount()

        assert feed.state is FeedState.IDLE
        assert backend.active == []
        assert feed.handle_insert(row(1)) is False

    async def test_user_switch_keeps_single_subscription(self):
        backend = FakeBackend()
        feed = backend.feed()

        await feed.mount("u1")
        await feed.mount("u1")
        await feed.mount("u2")

        assert len(backend.subscriptions) == 2
        assert [s.user_id for s in backend.active] == ["u2"]
        assert feed.user_id == "u2"

    async def test_switch_while_subscribing_releases_stale_subscription(self):
        backend = FakeBackend()
        backend.subscribe_gates["u1"] = asyncio.Event()
        feed = backend.feed()

        first = asyncio.create_task(feed.mount("u1"))
        await asyncio.sleep(0)
        await feed.mount("u2")
        backend.subscribe_gates["u1"].set()
        await first

        assert [s.user_id for s in backend.active] == ["u2"]
        assert feed.user_id == "u2"
        assert feed.subscription.user_id == "u2"
        assert feed.state is FeedState.READY

    async def test_switch_while_loading_keeps_single_subscription(self):
        backend = FakeBackend(items=[row(1, user="u2")], unread=1)
        backend.gate = asyncio.Event()
        feed = backend.feed()

        first = asyncio.create_task(feed.mount("u1"))
        await asyncio.sleep(0)
        assert feed.state is FeedState.LOADING
        second = asyncio.create_task(feed.mount("u2"))
        await asyncio.sleep(0)
        backend.gate.set()
        await asyncio.gather(first, second)

        assert [s.user_id for s in backend.active] == ["u2"]
        assert feed.subscription.user_id == "u2"
        assert feed.state is FeedState.READY
        assert feed.unread_count == 1

    async def test_unmount_while_subscribing_leaves_nothing_open(self):
        backend = FakeBackend()
        backend.subscribe_gates["u1"] = asyncio.Event()
        feed = backend.feed()

        task = asyncio.create_task(feed.mount("u1"))
        await asyncio.sleep(0)
        await feed.unmount()
        backend.subscribe_gates["u1"].set()
        await task

        assert backend.active == []
        assert feed.state is FeedState.IDLE
        assert feed.subscription is None

    async def test_insert_older_than_mark_all_arrives_read(self):
        backend = FakeBackend(items=[row(1, minutes=5)], unread=2)
        feed = backend.feed()
        await feed.mount("u1")

        feed.mark_all_as_read()
        # 서버 bulk update 이전에 만들어진 알림의 INSERT 가 늦게 도착
        assert feed.handle_insert(row(7, minutes=-30)) is True
        feed.handle_update({**row(7, minutes=-30), "is_read": True}, {"id": "n7", "is_read": False})

        assert feed.unread_count == 0
        assert feed.notifications[0]["id"] == "n7"
        assert feed.notifications[0]["is_read"] is True

    async def test_insert_after_mark_all_counts_new_rows(self):
        backend = FakeBackend(items=[row(1)], unread=1)
        feed = backend.feed()
        await feed.mount("u1")
        feed.mark_all_as_read()

        feed.handle_insert({**row(8), "created_at": "2999-01-01T00:00:00+00:00"})

        assert feed.unread_count == 1

    async def test_apply_change_dispatches_payload(self):
        backend = FakeBackend()
        feed = backend.feed()
        await feed.mount("u1")

        assert feed.apply_change({"event": "INSERT", "new": row(5), "old": None}) is True
        assert feed.apply_change({"event": "DELETE", "old": row(5)}) is False
        assert feed.snapshot()["unread_count"] == 1


@pytest.mark.asyncio
class TestChannelLayerSubscription:
    async def test_group_messages_reach_feed_until_unsubscribed(self):
        from channels.layers import InMemoryChannelLayer

        from realtime.groups import user_notifications_group
        from realtime.subscriptions import ChannelLayerSubscription

        layer = InMemoryChannelLayer()
        changes = []

        async def on_change(snapshot):
            changes.append(snapshot)

        async def subscribe(user_id, feed):
            return await ChannelLayerSubscription.open(layer, user_id, feed, on_change=on_change)

        backend = FakeBackend()
        feed = LiveNotificationFeed(fetch_page=backend.fetch_page, fetch_unread_count=backend.fetch_unread_count, subscribe=subscribe)
        await feed.mount("u1")

        await layer.group_send(user_notifications_group("u1"), {"type": "notification.change", "payload": {"event": "INSERT", "new": row(1), "old": None}})
        for _ in range(50):
            if changes:
                break
            await asyncio.sleep(0.01)

        assert changes and changes[-1]["unread_count"] == 1

        await feed.unmount()
        await layer.group_send(user_notifications_group("u1"), {"type": "notification.change", "payload": {"event": "INSERT", "new": row(2), "old": None}})
        await asyncio.sleep(0.05)

        assert len(changes) == 1
