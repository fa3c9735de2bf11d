import asyncio
import json
import signal

from channels.layers import get_channel_layer
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from realtime.consumers import fetch_page, fetch_unread_count
from realtime.live_feed import LiveNotificationFeed
from realtime.subscriptions import ChannelLayerSubscription


class Command(BaseCommand):
    help = "Mount a live notification feed for one user on the channel layer and print its state on every change"

    def add_arguments(self, parser):
        parser.add_argument("user_id")
        parser.add_argument("--page-size", type=int, default=settings.LIVE_FEED_PAGE_SIZE)

    def _print(self, snapshot):
        self.stdout.write(json.dumps(snapshot, ensure_ascii=False, default=str))

    async def _run(self, user_id, page_size):
        layer = get_channel_layer()
        if layer is None:
            raise CommandError("CHANNEL_LAYERS is not configured.")

        async def on_change(snapshot):
            self._print(snapshot)

        async def subscribe(uid, feed):
            return await ChannelLayerSubscription.open(layer, uid, feed, on_change=on_change)

        feed = LiveNotificationFeed(fetch_page=fetch_page, fetch_unread_count=fetch_unread_count, subscribe=subscribe, page_size=page_size)
        await feed.mount(user_id)
        self.stdout.write(self.style.SUCCESS(f"Watching notifications for {user_id}"))
        self._print(feed.snapshot())
        try:
            await asyncio.Event().wait()
        finally:
            await feed.unmount()

    def handle(self, *args, **options):
        user_id = options["user_id"]
        if not get_user_model().objects.filter(id=user_id).exists():
            raise CommandError(f"User {user_id} does not exist.")

        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        task = loop.create_task(self._run(user_id, options["page_size"]))

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, task.cancel)

        try:
            loop.run_until_complete(task)
        except asyncio.CancelledError:
            pass
        finally:
            loop.close()
            self.stdout.write(self.style.WARNING("Watcher stopped."))
