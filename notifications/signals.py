from django.conf import settings
from django.dispatch import receiver

from profiles.models import Profile
from relations.events import user_followed

from .models import NotificationType
from .services import notify_best_effort


@receiver(user_followed)
def notify_new_follower(sender, follower_id, following_id, **kwargs):
    # 기본값은 꺼짐. NOTIFY_ON_FOLLOW=True 일 때만 NEW_FOLLOWER 알림을 만든다
    if not getattr(settings, "NOTIFY_ON_FOLLOW", False):
        return
    actor = Profile.objects.filter(user_id=follower_id).first()
    if actor is None:
        return
    notify_best_effort(
        user_id=following_id,
        actor_id=follower_id,
        actor_name=actor.username,
        actor_avatar_url=actor.avatar_url,
        type=NotificationType.NEW_FOLLOWER,
        title=f"{actor.username}님이 회원님을 팔로우하기 시작했습니다",
    )
