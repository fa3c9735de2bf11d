import logging
from typing import Optional

from django.conf import settings
from django.db import transaction

from . import tasks
from .models import Notification
from .serializers import notification_row

log = logging.getLogger(__name__)


def _spawn(task, *args, **kwargs):
    # CELERY_TASK_ALWAYS_EAGER=True 라면 즉시 동기 실행(.apply), 그 외 환경에서는 .delay 로 비동기 실행.
    if getattr(settings, "CELERY_TASK_ALWAYS_EAGER", False):
        return task.apply(args=args, kwargs=kwargs)
    return task.delay(*args, **kwargs)


def _publish(user_id, payload: dict) -> None:
    def _send():
        try:
            _spawn(tasks.push_change, str(user_id), payload)
        except Exception:
            # 푸시 실패가 커밋된 쓰기 결과를 바꾸지 않는다
            log.exception("failed to dispatch %s push for user=%s", payload.get("event"), user_id)

    # 롤백된 행은 푸시하지 않는다
    transaction.on_commit(_send)


def publish_insert(notification: Notification) -> None:
    _publish(notification.user_id, {"event": "INSERT", "new": notification_row(notification), "old": None})


def publish_update(notification: Notification, old_is_read: Optional[bool]) -> None:
    old = {"id": str(notification.id), "is_read": old_is_read}
    _publish(notification.user_id, {"event": "UPDATE", "new": notification_row(notification), "old": old})
