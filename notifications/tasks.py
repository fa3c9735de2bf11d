import inspect
import logging
from typing import Any, Dict

from asgiref.sync import async_to_sync
from celery import shared_task
from channels.layers import get_channel_layer

from realtime.groups import user_notifications_group

log = logging.getLogger(__name__)


# 재시도 없음: 실시간 푸시는 at-most-once. 누락분은 클라이언트 재조회로 복구된다
@shared_task(name="notifications.push_change", ignore_result=True, max_retries=0)
def push_change(user_id: str, payload: Dict[str, Any]) -> int:
    """
    수신자 그룹(notifications.<user_id>)으로 알림 INSERT/UPDATE 이벤트를 보낸다.
    payload: {"event": "INSERT"|"UPDATE", "new": {...row}, "old": {...}|None}
    """
    layer = get_channel_layer()
    if not layer:
        return 0

    send = layer.group_send
    msg = {"type": "notification.change", "payload": payload}
    try:
        if inspect.iscoroutinefunction(send):
            async_to_sync(send)(user_notifications_group(user_id), msg)
        else:
            # 테스트 더미가 동기 구현인 경우
            send(user_notifications_group(user_id), msg)
    except Exception:
        log.exception("push_change failed user=%s event=%s", user_id, payload.get("event"))
        return 0
    return 1
