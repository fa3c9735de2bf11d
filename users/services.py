import logging

from django.db import IntegrityError, transaction
from rest_framework import serializers
from rest_framework_simplejwt.tokens import RefreshToken

from profiles.models import Profile

from .models import User

log = logging.getLogger(__name__)


def issue_tokens(user: User) -> dict:
    refresh = RefreshToken.for_user(user)
    return {"access": str(refresh.access_token), "refresh": str(refresh), "user_id": str(user.id)}


@transaction.atomic
def register_account(*, email: str, password: str, username: str, display_name: str = "") -> Profile:
    """자격증명 가입: 사용자와 프로필을 한 트랜잭션으로 만든다."""
    try:
        user = User.objects.create_user(email=email, password=password, user_metadata={"provider": "email"})
        profile = Profile.objects.create(user=user, username=username, display_name=display_name)
    except IntegrityError:
        # 검증 이후 동시 가입으로 선점된 경우
        raise serializers.ValidationError({"detail": "Username or email is already taken."})
    log.info("account registered user=%s", user.id)
    return profile
