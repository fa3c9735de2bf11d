"""
팔로우 그래프 도메인 이벤트.

프로세스 내부 수신자는 Django signal 로, 외부 구독자는 RELATIONS_EVENT_EMITTER
(dotted path, 기본: 로그 출력)로 전달한다. 어느 쪽이 실패해도 팔로우 결과는 바뀌지 않는다.
"""

import logging
from typing import Any, Callable, Dict

from django.conf import settings
from django.dispatch import Signal
from django.utils.module_loading import import_string

log = logging.getLogger(__name__)

USER_FOLLOWED = "UserFollowed"
USER_UNFOLLOWED = "UserUnfollowed"

user_followed = Signal()  # kwargs: follower_id, following_id
user_unfollowed = Signal()  # kwargs: follower_id, following_id

SIGNALS = {USER_FOLLOWED: user_followed, USER_UNFOLLOWED: user_unfollowed}

Emitter = Callable[[str, Dict[str, Any]], None]


def logging_emitter(event: str, payload: Dict[str, Any]) -> None:
    log.info("relation event %s follower=%s following=%s", event, payload.get("follower_id"), payload.get("following_id"))


def resolve_emitter() -> Emitter:
    path = getattr(settings, "RELATIONS_EVENT_EMITTER", "")
    if not path:
        return logging_emitter
    try:
        return import_string(path)
    except ImportError:
        log.exception("RELATIONS_EVENT_EMITTER=%s is not importable; using logging emitter", path)
        return logging_emitter


def _notify_receivers(event: str, payload: Dict[str, Any]) -> None:
    sig = SIGNALS.get(event)
    if sig is None:
        return
    for receiver, result in sig.send_robust(sender="relations", **payload):
        if isinstance(result, Exception):
            log.error("%s receiver %r failed: %s", event, receiver, result)


def emit(event: str, follower_id, following_id) -> None:
    payload = {"follower_id": str(follower_id), "following_id": str(following_id)}
    _notify_receivers(event, payload)
    try:
        resolve_emitter()(event, payload)
    except Exception:
        log.exception("relation event emitter failed for %s", event)


def emit_user_followed(follower_id, following_id) -> None:
    emit(USER_FOLLOWED, follower_id, following_id)


def emit_user_unfollowed(follower_id, following_id) -> None:
    emit(USER_UNFOLLOWED, follower_id, following_id)
