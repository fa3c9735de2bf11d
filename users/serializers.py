from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers
from rest_framework.exceptions import AuthenticationFailed

from profiles.models import Profile
from profiles.services.validators import ReservedUsernameValidator, UsernamePolicyValidator, normalize_username

from .models import User


class SignupInputSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8)
    username = serializers.CharField(max_length=20, validators=[UsernamePolicyValidator(), ReservedUsernameValidator()])
    display_name = serializers.CharField(required=False, allow_blank=True, max_length=50, default="")

    def validate_email(self, value: str) -> str:
        value = User.objects.normalize_email(value)
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("Email is already registered.")
        return value

    def validate_username(self, value: str) -> str:
        value = normalize_username(value)
        if Profile.objects.filter(username=value).exists():
            raise serializers.ValidationError("Username is already taken.")
        return value

    def validate_password(self, value: str) -> str:
        validate_password(value)
        return value


class LoginSerializer(serializers.Serializer):
    # 이메일 또는 username
    identifier = serializers.CharField(max_length=254)
    password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        identifier = attrs["identifier"].strip()
        if "@" in identifier:
            user = User.objects.filter(email__iexact=identifier).first()
        else:
            profile = Profile.objects.select_related("user").filter(username=identifier).first()
            user = profile.user if profile else None

        if user is None or not user.is_active or not user.check_password(attrs["password"]):
            raise AuthenticationFailed("Invalid credentials.")
        attrs["user"] = user
        return attrs


class LogoutSerializer(serializers.Serializer):
    all_logout = serializers.BooleanField(required=False, default=False)
    refresh = serializers.CharField(required=False, allow_blank=False)

    def validate(self, attrs):
        if not attrs.get("all_logout", False) and not attrs.get("refresh"):
            raise serializers.ValidationError({"refresh": "This field is required when all_logout is false."})
        return attrs
