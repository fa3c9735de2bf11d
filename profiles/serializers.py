from django.db import IntegrityError, transaction
from rest_framework import serializers

from .models import Profile
from .services.accounts import validate_username
from .services.validators import ReservedUsernameValidator, UsernamePolicyValidator, normalize_username


class ProfileReadSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source="user_id", read_only=True)
    # get_queryset 에서 annotate 된 경우에만 채워진다
    follower_count = serializers.IntegerField(read_only=True, required=False)
    following_count = serializers.IntegerField(read_only=True, required=False)
    is_following = serializers.BooleanField(read_only=True, required=False)
    is_followed_by = serializers.BooleanField(read_only=True, required=False)

    class Meta:
        model = Profile
        fields = (
            "id",
            "username",
            "display_name",
            "bio",
            "avatar_url",
            "is_private",
            "allow_follow",
            "created_at",
            "updated_at",
            "follower_count",
            "following_count",
            "is_following",
            "is_followed_by",
        )


class ProfileSummarySerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source="user_id", read_only=True)

    class Meta:
        model = Profile
        fields = ("id", "username", "display_name", "avatar_url")


class _UsernameMixin:
    def validate_username(self, value: str) -> str:
        value = normalize_username(value)
        instance = getattr(self, "instance", None)
        res = validate_username(value, exclude_user_id=instance.user_id if instance else None)
        if not res.success:
            raise serializers.ValidationError(res.error)
        return value


class ProfileCreateSerializer(_UsernameMixin, serializers.ModelSerializer):
    username = serializers.CharField(max_length=20, validators=[UsernamePolicyValidator(), ReservedUsernameValidator()])

    class Meta:
        model = Profile
        fields = ("username", "display_name", "bio", "avatar_url", "is_private", "allow_follow")

    @transaction.atomic
    def create(self, validated_data):
        user = self.context["request"].user
        if Profile.objects.filter(user=user).exists():
            raise serializers.ValidationError({"detail": "Profile already exists for this user."})
        try:
            return Profile.objects.create(user=user, **validated_data)
        except IntegrityError:
            raise serializers.ValidationError({"username": "Username is already taken."})


class ProfileUpdateSerializer(_UsernameMixin, serializers.ModelSerializer):
    username = serializers.CharField(required=False, max_length=20, validators=[UsernamePolicyValidator(), ReservedUsernameValidator()])

    class Meta:
        model = Profile
        fields = ("username", "display_name", "bio", "avatar_url", "is_private", "allow_follow")

    @transaction.atomic
    def update(self, instance: Profile, validated_data):
        for k, v in validated_data.items():
            setattr(instance, k, v)
        try:
            instance.save()
        except IntegrityError:
            raise serializers.ValidationError({"username": "Username is already taken."})
        return instance
