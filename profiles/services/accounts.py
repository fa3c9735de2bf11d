import logging
import re
import time
from typing import Optional, Tuple

from django.contrib.auth import get_user_model
from django.db import DatabaseError, IntegrityError, transaction

from common.results import BACKEND, CONFLICT, INVALID, NOT_FOUND, OpResult

from ..models import Profile
from .validators import USERNAME_MAX, USERNAME_MESSAGE, USERNAME_MIN, normalize_username, reserved_usernames, username_problems

log = logging.getLogger(__name__)
User = get_user_model()

_DISALLOWED = re.compile(r"[^A-Za-z0-9_]")
MAX_SUFFIX_ATTEMPTS = 20


def _timestamp() -> int:
    return int(time.time() * 1000)


def derive_username_base(user) -> str:
    """
    인증 공급자 메타데이터에서 username 후보를 만든다.
    preferred_username -> user_name -> name -> 이메일 local part -> user_<ts>
    """
    meta = user.user_metadata or {}
    raw = meta.get("preferred_username") or meta.get("user_name") or meta.get("name") or ((user.email or "").split("@")[0]) or ""
    cleaned = _DISALLOWED.sub("", raw)
    if len(cleaned) < USERNAME_MIN or cleaned.lower() in reserved_usernames():
        cleaned = f"user_{_timestamp()}"
    return cleaned[:USERNAME_MAX]


def _with_suffix(base: str, n: int) -> str:
    suffix = f"_{n}"
    return f"{base[: USERNAME_MAX - len(suffix)]}{suffix}"


def _profile_defaults(user) -> dict:
    meta = user.user_metadata or {}
    return {
        "display_name": (meta.get("full_name") or meta.get("name") or "")[:50],
        "avatar_url": meta.get("avatar_url") or meta.get("picture") or None,
    }


def ensure_profile(user) -> Tuple[Profile, bool]:
    """
    세션 사용자의 프로필이 없으면 만든다(멱등). (profile, created) 반환.
    username 충돌 시 숫자 접미사를 붙여 빈 이름을 찾을 때까지 재시도한다.
    """
    existing = Profile.objects.filter(user=user).first()
    if existing:
        return existing, False

    base = derive_username_base(user)
    candidate = base
    stamp = _timestamp() % 1_000_000
    for attempt in range(MAX_SUFFIX_ATTEMPTS):
        if not Profile.objects.filter(username=candidate).exists():
            try:
                with transaction.atomic():
                    profile = Profile.objects.create(user=user, username=candidate, **_profile_defaults(user))
                log.info("profile created for %s as %s", user.id, candidate)
                return profile, True
            except IntegrityError:
                # 동시 요청이 먼저 만들었거나 username 을 선점
                existing = Profile.objects.filter(user=user).first()
                if existing:
                    return existing, False
        candidate = _with_suffix(base, stamp + attempt)

    raise IntegrityError(f"Could not allocate a username for user {user.id}")


def check_username_availability(username: str) -> bool:
    return not Profile.objects.filter(username=username).exists()


def list_orphaned_accounts() -> dict:
    orphans = User.objects.filter(profile__isnull=True).order_by("created_at")
    return {
        "total_auth_users": User.objects.count(),
        "total_profiles": Profile.objects.count(),
        "orphaned_count": orphans.count(),
        "orphaned_accounts": [
            {
                "id": str(u.id),
                "email": u.email,
                "created_at": u.created_at,
                "last_active": u.last_active,
                "provider": (u.user_metadata or {}).get("provider"),
            }
            for u in orphans
        ],
    }


def delete_orphaned_account(user_id) -> OpResult:
    user = User.objects.filter(id=user_id).first()
    if user is None:
        return OpResult.fail("User not found.", NOT_FOUND)
    if Profile.objects.filter(user_id=user_id).exists():
        return OpResult.fail("Cannot delete user with existing profile. Delete profile first.", INVALID)
    try:
        user.delete()
    except DatabaseError:
        log.exception("delete_orphaned_account failed user=%s", user_id)
        return OpResult.fail("Failed to delete user.", BACKEND)
    log.info("orphaned account %s deleted", user_id)
    return OpResult.ok()


def get_profile_by_username(username: str) -> Optional[Profile]:
    return Profile.objects.select_related("user").filter(username=username).first()


def validate_username(value: str, *, exclude_user_id=None) -> OpResult:
    # 형식/예약어/중복을 한 번에 검사
    v = normalize_username(value)
    problems = username_problems(v)
    if "Reserved Word" in problems and len(problems) == 1:
        return OpResult.fail("This username is not allowed.", INVALID)
    if problems:
        return OpResult.fail(USERNAME_MESSAGE, INVALID)
    taken = Profile.objects.filter(username=v)
    if exclude_user_id is not None:
        taken = taken.exclude(user_id=exclude_user_id)
    if taken.exists():
        return OpResult.fail("Username is already taken.", CONFLICT)
    return OpResult.ok()
