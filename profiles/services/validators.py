import re
import unicodedata
from typing import List

from django.conf import settings
from django.utils.translation import gettext_lazy as _
from rest_framework import serializers

USERNAME_MIN = 3
USERNAME_MAX = 20
USERNAME_REGEX = re.compile(r"^[A-Za-z0-9_]{3,20}$")
USERNAME_MESSAGE = "Username must be 3-20 characters of letters, numbers or underscores."


def normalize_username(value: str) -> str:
    # 전각 문자 등은 NFKC 로 정규화. 대소문자는 저장된 그대로 구분한다.
    return unicodedata.normalize("NFKC", value or "").strip()


def reserved_usernames() -> set[str]:
    return {w.strip().lower() for w in getattr(settings, "USERNAME_RESERVED", [])}


def username_problems(value: str) -> List[str]:
    reasons = []
    v = normalize_username(value)
    if not (USERNAME_MIN <= len(v) <= USERNAME_MAX):
        reasons.append("Type Error(Length)")
    if not USERNAME_REGEX.match(v):
        reasons.append("Type Error(Format)")
    if v.lower() in reserved_usernames():
        reasons.append("Reserved Word")
    return reasons


class UsernamePolicyValidator:
    message = _(USERNAME_MESSAGE)

    def __call__(self, value: str):
        v = normalize_username(value)
        if not (USERNAME_MIN <= len(v) <= USERNAME_MAX) or not USERNAME_REGEX.match(v):
            raise serializers.ValidationError(self.message)
        return v


class ReservedUsernameValidator:
    message = _("This username is not allowed.")

    def __call__(self, value: str):
        if normalize_username(value).lower() in reserved_usernames():
            raise serializers.ValidationError(self.message)
        return value
