import logging
from dataclasses import dataclass
from typing import List, Optional

from django.db import DatabaseError, transaction
from django.utils import timezone

from common.results import BACKEND, FORBIDDEN, INVALID, NOT_FOUND, OpResult

from . import broadcast
from .models import Notification, NotificationType

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationResult:
    success: bool
    notification: Optional[Notification] = None
    error: Optional[str] = None
    code: Optional[str] = None


@dataclass(frozen=True)
class MarkAllResult:
    success: bool
    updated: int = 0
    error: Optional[str] = None
    code: Optional[str] = None


def create_notification(
    *,
    user_id,
    actor_id,
    actor_name: str,
    type: str,
    title: str,
    actor_avatar_url: Optional[str] = None,
    message: Optional[str] = None,
    post_id=None,
    comment_id=None,
) -> NotificationResult:
    # 호출자가 걸렀더라도 자기 자신 알림은 여기서 한 번 더 막는다
    if actor_id is not None and str(actor_id) == str(user_id):
        return NotificationResult(success=False, error="Cannot notify self.", code=FORBIDDEN)
    if not (actor_name or "").strip():
        return NotificationResult(success=False, error="Actor name is required.", code=INVALID)
    if type not in NotificationType.values:
        return NotificationResult(success=False, error="Unknown notification type.", code=INVALID)

    try:
        with transaction.atomic():
            n = Notification.objects.create(
                user_id=user_id,
                actor_id=actor_id,
                actor_name=actor_name.strip(),
                actor_avatar_url=actor_avatar_url,
                type=type,
                title=title,
                message=message,
                post_id=post_id,
                comment_id=comment_id,
            )
    except DatabaseError:
        log.exception("create_notification failed type=%s user=%s actor=%s", type, user_id, actor_id)
        return NotificationResult(success=False, error="Failed to create notification.", code=BACKEND)

    broadcast.publish_insert(n)
    return NotificationResult(success=True, notification=n)


def notify_best_effort(**data) -> Optional[Notification]:
    """
    좋아요/댓글/팔로우의 부수효과 알림. 절대 예외를 올리지 않는다.
    주 작업의 성공이 확정된 뒤에만 호출할 것.
    """
    try:
        res = create_notification(**data)
    except Exception:
        log.exception("notification side effect crashed type=%s user=%s", data.get("type"), data.get("user_id"))
        return None
    if not res.success:
        log.warning("notification side effect skipped type=%s user=%s: %s", data.get("type"), data.get("user_id"), res.error)
        return None
    return res.notification


def notifications_queryset(user_id, read: Optional[bool] = None):
    qs = Notification.objects.for_user(user_id)
    if read is not None:
        qs = qs.filter(is_read=read)
    return qs.newest_first()


def get_notifications(user_id, offset: int = 0, limit: int = 20, read: Optional[bool] = None) -> List[Notification]:
    return list(notifications_queryset(user_id, read)[offset : offset + limit])


def get_unread_notification_count(user_id) -> int:
    return Notification.objects.for_user(user_id).unread().count()


def mark_notification_as_read(notification_id, user_id) -> OpResult:
    try:
        # id + user_id 를 한 UPDATE 의 조건으로 건다
        updated = Notification.objects.owned(notification_id, user_id).unread().update(is_read=True, read_at=timezone.now())
        if not updated:
            if Notification.objects.owned(notification_id, user_id).exists():
                return OpResult.ok(changed=False)
            return OpResult.fail("Notification not found.", NOT_FOUND)
        n = Notification.objects.get(pk=notification_id)
    except DatabaseError:
        log.exception("mark_notification_as_read failed id=%s user=%s", notification_id, user_id)
        return OpResult.fail("Failed to mark notification as read.", BACKEND)

    broadcast.publish_update(n, old_is_read=False)
    return OpResult.ok()


def mark_all_notifications_as_read(user_id) -> MarkAllResult:
    try:
        now = timezone.now()
        updated = Notification.objects.for_user(user_id).unread().update(is_read=True, read_at=now)
        # 이번 UPDATE 가 바꾼 행만 read_at == now
        changed = list(Notification.objects.for_user(user_id).filter(is_read=True, read_at=now)) if updated else []
    except DatabaseError:
        log.exception("mark_all_notifications_as_read failed user=%s", user_id)
        return MarkAllResult(success=False, error="Failed to mark notifications as read.", code=BACKEND)

    for n in changed:
        broadcast.publish_update(n, old_is_read=False)
    return MarkAllResult(success=True, updated=updated)


def delete_notification(notification_id, user_id) -> OpResult:
    try:
        deleted, _ = Notification.objects.owned(notification_id, user_id).delete()
    except DatabaseError:
        log.exception("delete_notification failed id=%s user=%s", notification_id, user_id)
        return OpResult.fail("Failed to delete notification.", BACKEND)
    if not deleted:
        return OpResult.fail("Notification not found.", NOT_FOUND)
    return OpResult.ok()
