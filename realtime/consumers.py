import logging
import uuid

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.conf import settings

from notifications import services
from notifications.serializers import notification_row

from .groups import user_notifications_group
from .live_feed import LiveNotificationFeed

log = logging.getLogger(__name__)


@database_sync_to_async
def fetch_page(user_id, offset, limit):
    return [notification_row(n) for n in services.get_notifications(user_id, offset=offset, limit=limit)]


@database_sync_to_async
def fetch_unread_count(user_id):
    return services.get_unread_notification_count(user_id)


@database_sync_to_async
def mark_read(notification_id, user_id):
    return services.mark_notification_as_read(notification_id, user_id)


@database_sync_to_async
def mark_all_read(user_id):
    return services.mark_all_notifications_as_read(user_id)


class GroupSubscription:
    """채널 그룹 가입을 구독 객체로 감싼다. unsubscribe 는 여러 번 불러도 안전."""

    def __init__(self, layer, group, channel_name):
        self.layer = layer
        self.group = group
        self.channel_name = channel_name
        self.active = True

    async def unsubscribe(self):
        if not self.active:
            return
        self.active = False
        await self.layer.group_discard(self.group, self.channel_name)


class NotificationConsumer(AsyncJsonWebsocketConsumer):
    """
    그룹: notifications.<user_id>
    연결마다 LiveNotificationFeed 하나를 띄우고 그룹 메시지를 피드에 반영한 뒤 상태를 내려준다.
    group_send 예:
        await channel_layer.group_send(
            user_notifications_group(user_id),
            {"type": "notification.change", "payload": {"event": "INSERT", "new": {...}, "old": None}}
        )
    """

    async def connect(self):
        self.user_id = self.scope.get("user_id")
        if not self.user_id:
            await self.close(code=4401)  # unauthorized
            return

        self.feed = LiveNotificationFeed(
            fetch_page=fetch_page,
            fetch_unread_count=fetch_unread_count,
            subscribe=self._subscribe,
            page_size=getattr(settings, "LIVE_FEED_PAGE_SIZE", 10),
        )
        await self.accept()
        await self.feed.mount(self.user_id)
        await self.send_json({"event": "snapshot", "data": self.feed.snapshot()})

    async def _subscribe(self, user_id, feed):
        group = user_notifications_group(user_id)
        await self.channel_layer.group_add(group, self.channel_name)
        return GroupSubscription(self.channel_layer, group, self.channel_name)

    async def disconnect(self, code):
        feed = getattr(self, "feed", None)
        if feed is not None:
            await feed.unmount()

    async def receive_json(self, content, **kwargs):
        kind = (content or {}).get("type")
        if kind == "ping":
            await self.send_json({"event": "pong"})
        elif kind == "mark_read" and content.get("id"):
            try:
                uuid.UUID(str(content["id"]))
            except ValueError:
                await self.send_json({"event": "error", "data": {"detail": "Notification not found."}})
                return
            res = await mark_read(content["id"], self.user_id)
            if not res.success:
                await self.send_json({"event": "error", "data": {"detail": res.error}})
                return
            self.feed.mark_as_read(content["id"])
            await self._send_state()
        elif kind == "mark_all_read":
            res = await mark_all_read(self.user_id)
            if not res.success:
                await self.send_json({"event": "error", "data": {"detail": res.error}})
                return
            self.feed.mark_all_as_read()
            await self._send_state()

    async def notification_change(self, event):
        if self.feed.apply_change(event.get("payload") or {}):
            await self._send_state()

    async def _send_state(self):
        await self.send_json({"event": "state", "data": self.feed.snapshot()})
