from rest_framework import serializers

from .models import Notification


class NotificationOut(serializers.ModelSerializer):
    user_id = serializers.UUIDField(read_only=True)
    actor_id = serializers.UUIDField(read_only=True, allow_null=True)
    post_id = serializers.UUIDField(read_only=True, allow_null=True)
    comment_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = Notification
        fields = (
            "id",
            "user_id",
            "actor_id",
            "actor_name",
            "actor_avatar_url",
            "type",
            "title",
            "message",
            "post_id",
            "comment_id",
            "is_read",
            "read_at",
            "created_at",
        )


class NotificationListIn(serializers.Serializer):
    read = serializers.BooleanField(required=False, allow_null=True, default=None)


def notification_row(notification: Notification) -> dict:
    # 푸시 페이로드: 채널 레이어로 보낼 수 있도록 JSON 직렬화 가능한 dict
    return dict(NotificationOut(notification).data)
