"""
실시간 알림 피드(클라이언트 측 상태 머신).

한 번의 조회(최근 N개 + 안 읽은 개수)와 수신자 단위 푸시 스트림(INSERT/UPDATE)을 합쳐
목록과 unread 카운트를 서버 왕복 없이 유지한다.

- 상태: idle -> loading -> ready. 오류는 로그만 남기고 마지막 상태를 유지한다.
- 로컬 낙관적 읽음 처리와 나중에 도착하는 푸시 UPDATE 는 id 기준 "이미 반영했으면 무시"로
  합쳐지므로 도착 순서와 무관하게 같은 결과가 된다.
- 마운트된 피드 하나당 구독은 최대 하나. unmount 또는 사용자 변경 시 반드시 해제한다.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from django.utils import timezone
from django.utils.dateparse import parse_datetime

log = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10

Row = Dict[str, Any]


class FeedState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"


class Subscription(Protocol):
    async def unsubscribe(self) -> None: ...


FetchPage = Callable[[str, int, int], Awaitable[List[Row]]]
FetchCount = Callable[[str], Awaitable[int]]
Subscribe = Callable[[str, "LiveNotificationFeed"], Awaitable[Subscription]]


def _as_datetime(value):
    if value is None or hasattr(value, "tzinfo"):
        return value
    return parse_datetime(str(value))


class LiveNotificationFeed:
    def __init__(self, *, fetch_page: FetchPage, fetch_unread_count: FetchCount, subscribe: Subscribe, page_size: int = DEFAULT_PAGE_SIZE):
        self._fetch_page = fetch_page
        self._fetch_unread_count = fetch_unread_count
        self._subscribe = subscribe
        self.page_size = page_size

        self.state = FeedState.IDLE
        self.user_id: Optional[str] = None
        self.notifications: List[Row] = []
        self.unread_count = 0
        self.subscription: Optional[Subscription] = None

        self._pending: List[tuple] = []
        self._read_ids: set = set()
        self._read_all_at = None
        self._generation = 0

    # ---- lifecycle ----
    async def mount(self, user_id) -> None:
        user_id = str(user_id)
        if self.user_id == user_id and self.state is not FeedState.IDLE:
            return
        if self.state is not FeedState.IDLE:
            # 사용자 변경: 이전 구독부터 정리
            await self.unmount()

        self._generation += 1
        generation = self._generation
        self._reset()
        self.user_id = user_id
        self.state = FeedState.LOADING

        try:
            sub = await self._subscribe(user_id, self)
        except Exception:
            log.exception("live feed subscribe failed user=%s", user_id)
            sub = None

        if generation != self._generation:
            # 구독을 기다리는 사이 unmount/사용자 변경됨: 이 마운트가 연 구독은 직접 해제
            await self._release(sub, user_id)
            return
        self.subscription = sub

        try:
            items, count = await asyncio.gather(self._fetch_page(user_id, 0, self.page_size), self._fetch_unread_count(user_id))
        except Exception:
            log.exception("live feed initial load failed user=%s", user_id)
            items, count = [], 0

        if generation != self._generation:
            # 구독은 self.subscription 으로 넘어갔으므로 새 마운트의 unmount 가 해제한다
            return

        self.notifications = [dict(n) for n in items][: self.page_size]
        self.unread_count = max(0, int(count or 0))
        self.state = FeedState.READY

        pending, self._pending = self._pending, []
        for kind, new, old in pending:
            self._apply(kind, new, old)

    async def unmount(self) -> None:
        self._generation += 1
        sub, self.subscription = self.subscription, None
        user_id = self.user_id
        self._reset()
        self.state = FeedState.IDLE
        self.user_id = None
        await self._release(sub, user_id)

    @staticmethod
    async def _release(sub: Optional[Subscription], user_id) -> None:
        if sub is None:
            return
        try:
            await sub.unsubscribe()
        except Exception:
            log.exception("live feed unsubscribe failed user=%s", user_id)

    def _reset(self) -> None:
        self.notifications = []
        self.unread_count = 0
        self._pending = []
        self._read_ids = set()
        self._read_all_at = None

    # ---- push events ----
    def apply_change(self, payload: Dict[str, Any]) -> bool:
        """{"event": "INSERT"|"UPDATE", "new": row, "old": row|None} 형태의 푸시 이벤트 반영."""
        event = (payload or {}).get("event")
        if event == "INSERT":
            return self.handle_insert(payload.get("new") or {})
        if event == "UPDATE":
            return self.handle_update(payload.get("new") or {}, payload.get("old"))
        return False

    def handle_insert(self, row: Row) -> bool:
        return self._dispatch("INSERT", row, None)

    def handle_update(self, new: Row, old: Optional[Row] = None) -> bool:
        return self._dispatch("UPDATE", new, old)

    def _dispatch(self, kind: str, new: Row, old: Optional[Row]) -> bool:
        if self.state is FeedState.IDLE or not new.get("id"):
            return False
        # 구독 필터(user_id = 수신자)와 다른 행은 무시
        if new.get("user_id") is not None and str(new["user_id"]) != self.user_id:
            return False
        if self.state is FeedState.LOADING:
            self._pending.append((kind, new, old))
            return False
        return self._apply(kind, new, old)

    def _apply(self, kind: str, new: Row, old: Optional[Row]) -> bool:
        if kind == "INSERT":
            return self._apply_insert(new)
        return self._apply_update(new, old)

    def _apply_insert(self, row: Row) -> bool:
        nid = str(row["id"])
        if self._find(nid) is not None:
            return False
        item = dict(row)
        # mark-all 이전에 만들어진 행이거나 이미 읽음 처리한 id 면 읽은 상태로 들어온다
        if item.get("is_read") or self._known_read(nid, item):
            item["is_read"] = True
            self._read_ids.add(nid)
        else:
            self.unread_count += 1
        self.notifications.insert(0, item)
        del self.notifications[self.page_size :]
        return True

    def _apply_update(self, new: Row, old: Optional[Row]) -> bool:
        nid = str(new["id"])
        item = self._find(nid)
        if item is not None:
            was_read = bool(item.get("is_read")) or self._known_read(nid, item)
            item["is_read"] = bool(new.get("is_read"))
            item["read_at"] = new.get("read_at")
        else:
            was_read = self._known_read(nid, new) or (old or {}).get("is_read") is not False

        if new.get("is_read"):
            self._read_ids.add(nid)
            if not was_read:
                self.unread_count = max(0, self.unread_count - 1)
        return True

    # ---- local optimistic actions ----
    def mark_as_read(self, notification_id) -> bool:
        nid = str(notification_id)
        item = self._find(nid)
        if item is None or item.get("is_read") or self._known_read(nid, item):
            return False
        item["is_read"] = True
        item["read_at"] = timezone.now().isoformat()
        self._read_ids.add(nid)
        self.unread_count = max(0, self.unread_count - 1)
        return True

    def mark_all_as_read(self) -> bool:
        now = timezone.now()
        for item in self.notifications:
            if not item.get("is_read"):
                item["is_read"] = True
                item["read_at"] = now.isoformat()
            self._read_ids.add(str(item["id"]))
        # 이 시점 이전에 만들어진 알림은 모두 읽음으로 간주(목록 밖의 행 포함)
        self._read_all_at = now
        changed = self.unread_count != 0
        self.unread_count = 0
        return changed

    # ---- helpers ----
    def _find(self, nid: str) -> Optional[Row]:
        for item in self.notifications:
            if str(item.get("id")) == nid:
                return item
        return None

    def _known_read(self, nid: str, row: Row) -> bool:
        if nid in self._read_ids:
            return True
        if self._read_all_at is None:
            return False
        created = _as_datetime(row.get("created_at"))
        return created is not None and created <= self._read_all_at

    def snapshot(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "notifications": [dict(n) for n in self.notifications],
            "unread_count": self.unread_count,
        }
