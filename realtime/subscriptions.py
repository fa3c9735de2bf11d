import asyncio
import contextlib
import logging
from typing import Awaitable, Callable, Optional

from .groups import user_notifications_group

log = logging.getLogger(__name__)


class ChannelLayerSubscription:
    """
    WebSocket 없이 채널 레이어에 직접 붙는 구독.
    전용 채널을 만들어 수신자 그룹에 가입하고, 받은 notification.change 메시지를 피드에 넘긴다.
    """

    def __init__(self, layer, group: str, channel: str, task: asyncio.Task):
        self.layer = layer
        self.group = group
        self.channel = channel
        self._task = task

    @classmethod
    async def open(cls, layer, user_id, feed, on_change: Optional[Callable[[dict], Awaitable[None]]] = None):
        channel = await layer.new_channel()
        group = user_notifications_group(user_id)
        await layer.group_add(group, channel)
        task = asyncio.create_task(cls._pump(layer, channel, feed, on_change))
        return cls(layer, group, channel, task)

    @staticmethod
    async def _pump(layer, channel, feed, on_change):
        while True:
            msg = await layer.receive(channel)
            if msg.get("type") != "notification.change":
                continue
            payload = msg.get("payload") or {}
            if feed.apply_change(payload) and on_change is not None:
                try:
                    await on_change(feed.snapshot())
                except Exception:
                    log.exception("on_change callback failed channel=%s", channel)

    @property
    def active(self) -> bool:
        return not self._task.done()

    async def unsubscribe(self) -> None:
        if self._task.done():
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        await self.layer.group_discard(self.group, self.channel)
