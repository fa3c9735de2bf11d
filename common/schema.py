from drf_spectacular.utils import inline_serializer
from rest_framework import serializers

# Common
ErrorOut = inline_serializer(
    name="ErrorOut",
    fields={"detail": serializers.CharField(help_text="Human readable error message.")},
)

# Auth
SignupOut = inline_serializer(
    name="SignupOut",
    fields={
        "user_id": serializers.UUIDField(),
        "username": serializers.CharField(),
        "access": serializers.CharField(),
        "refresh": serializers.CharField(),
    },
)

LoginOut = inline_serializer(
    name="LoginOut",
    fields={
        "access": serializers.CharField(),
        "refresh": serializers.CharField(),
        "user_id": serializers.UUIDField(),
    },
)

# Profiles
AvailabilityOut = inline_serializer(
    name="AvailabilityOut",
    fields={
        "username": serializers.CharField(),
        "available": serializers.BooleanField(),
        "reasons": serializers.ListField(child=serializers.CharField()),
    },
)

UserStatsOut = inline_serializer(
    name="UserStatsOut",
    fields={
        "post_count": serializers.IntegerField(),
        "follower_count": serializers.IntegerField(),
        "following_count": serializers.IntegerField(),
    },
)

FixProfileOut = inline_serializer(
    name="FixProfileOut",
    fields={
        "status": serializers.ChoiceField(choices=["exists", "created"]),
        "profile": serializers.DictField(),
    },
)

OrphanedAccountsOut = inline_serializer(
    name="OrphanedAccountsOut",
    fields={
        "total_auth_users": serializers.IntegerField(),
        "total_profiles": serializers.IntegerField(),
        "orphaned_count": serializers.IntegerField(),
        "orphaned_accounts": serializers.ListField(child=serializers.DictField()),
    },
)

SuccessOut = inline_serializer(
    name="SuccessOut",
    fields={"success": serializers.BooleanField()},
)

# Relations
FollowStatusOut = inline_serializer(
    name="FollowStatusOut",
    fields={
        "is_following": serializers.BooleanField(),
        "is_followed_by": serializers.BooleanField(),
        "is_mutual": serializers.BooleanField(),
    },
)

FollowToggleOut = inline_serializer(
    name="FollowToggleOut",
    fields={"is_following": serializers.BooleanField()},
)

# Posts
LikeToggleOut = inline_serializer(
    name="LikeToggleOut",
    fields={"liked": serializers.BooleanField(), "likes_count": serializers.IntegerField()},
)

# Notifications
UnreadCountOut = inline_serializer(
    name="UnreadCountOut",
    fields={"unread_count": serializers.IntegerField()},
)

MarkAllReadOut = inline_serializer(
    name="MarkAllReadOut",
    fields={"updated": serializers.IntegerField(help_text="읽음 처리된 개수")},
)

# Realtime (WebSocket)
RealtimeCapabilitiesOut = inline_serializer(
    name="RealtimeCapabilitiesOut",
    fields={
        "websocket_url": serializers.CharField(help_text="WS endpoint (absolute or relative)"),
        "auth": serializers.DictField(help_text="JWT 전달 방법"),
        "events": serializers.ListField(child=serializers.DictField(), help_text="지원 이벤트/메시지 요약"),
        "close_codes": serializers.DictField(child=serializers.CharField(), required=False),
        "notes": serializers.ListField(child=serializers.CharField(), required=False),
    },
)
