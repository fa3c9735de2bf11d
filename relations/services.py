import logging
from dataclasses import dataclass, field
from typing import List, Optional

from django.contrib.auth import get_user_model
from django.db import DatabaseError, IntegrityError, transaction

from common.results import BACKEND, CONFLICT, FORBIDDEN, NOT_FOUND, OpResult
from profiles.models import Profile

from .events import emit_user_followed, emit_user_unfollowed
from .models import Follow

log = logging.getLogger(__name__)
User = get_user_model()


@dataclass(frozen=True)
class FollowToggleResult:
    success: bool
    is_following: bool
    error: Optional[str] = None
    code: Optional[str] = None


@dataclass(frozen=True)
class FollowPage:
    items: List[Profile] = field(default_factory=list)
    total: int = 0


class RelationshipService:
    """
    팔로우 그래프 규칙을 한 곳에서 강제.
    - 자기 자신 팔로우 금지
    - 대상 프로필 존재 + allow_follow 확인
    - (follower, following) 유니크 제약이 최종 안전망. 위반은 '이미 팔로우 중'으로 취급
    """

    @staticmethod
    def follow_user(follower_id, following_id) -> OpResult:
        if str(follower_id) == str(following_id):
            return OpResult.fail("Cannot follow yourself.", FORBIDDEN)
        try:
            target = Profile.objects.filter(user_id=following_id).only("user_id", "allow_follow").first()
            if target is None:
                return OpResult.fail("User not found.", NOT_FOUND)
            if not target.allow_follow:
                return OpResult.fail("This user does not allow follows.", FORBIDDEN)
            if Follow.objects.edge(follower_id, following_id).exists():
                return OpResult.fail("Already following.", CONFLICT)
            try:
                with transaction.atomic():
                    Follow.objects.create(follower_id=follower_id, following_id=following_id)
            except IntegrityError:
                # 더블 클릭/다중 탭 경쟁: 다른 요청이 먼저 엣지를 만들었다
                return OpResult.fail("Already following.", CONFLICT)
        except DatabaseError:
            log.exception("follow_user failed follower=%s following=%s", follower_id, following_id)
            return OpResult.fail("Failed to follow user.", BACKEND)

        emit_user_followed(follower_id, following_id)
        return OpResult.ok()

    @staticmethod
    def unfollow_user(follower_id, following_id) -> OpResult:
        # 없는 엣지를 지워도 성공(멱등). changed 로 실제 삭제 여부를 알린다
        try:
            deleted, _ = Follow.objects.edge(follower_id, following_id).delete()
        except DatabaseError:
            log.exception("unfollow_user failed follower=%s following=%s", follower_id, following_id)
            return OpResult.fail("Failed to unfollow user.", BACKEND)
        if deleted:
            emit_user_unfollowed(follower_id, following_id)
        return OpResult.ok(changed=bool(deleted))

    @staticmethod
    def check_follow_status(follower_id, following_id) -> bool:
        return Follow.objects.edge(follower_id, following_id).exists()

    @staticmethod
    def toggle_follow(follower_id, following_id) -> FollowToggleResult:
        try:
            following = RelationshipService.check_follow_status(follower_id, following_id)
        except DatabaseError:
            log.exception("toggle_follow status check failed follower=%s following=%s", follower_id, following_id)
            return FollowToggleResult(success=False, is_following=False, error="Failed to update follow.", code=BACKEND)

        if following:
            res = RelationshipService.unfollow_user(follower_id, following_id)
            return FollowToggleResult(success=res.success, is_following=not res.success, error=res.error, code=res.code)

        res = RelationshipService.follow_user(follower_id, following_id)
        if res.code == CONFLICT:
            # 이미 원하는 상태
            return FollowToggleResult(success=True, is_following=True)
        return FollowToggleResult(success=res.success, is_following=res.success, error=res.error, code=res.code)

    @staticmethod
    def _page(edges, id_field: str, offset: int, limit: int) -> FollowPage:
        total = edges.count()
        ids = list(edges.in_edge_order().values_list(id_field, flat=True)[offset : offset + limit])
        # 목록에 나오는 사용자 자신의 is_private 로 거른다. total 은 필터 전 값
        by_id = {p.user_id: p for p in Profile.objects.filter(user_id__in=ids, is_private=False)}
        return FollowPage(items=[by_id[i] for i in ids if i in by_id], total=total)

    @staticmethod
    def get_followers(user_id, offset: int = 0, limit: int = 20) -> FollowPage:
        return RelationshipService._page(Follow.objects.followers_of(user_id), "follower_id", offset, limit)

    @staticmethod
    def get_following(user_id, offset: int = 0, limit: int = 20) -> FollowPage:
        return RelationshipService._page(Follow.objects.following_of(user_id), "following_id", offset, limit)

    @staticmethod
    def get_follower_count(user_id) -> int:
        return Follow.objects.followers_of(user_id).count()

    @staticmethod
    def get_following_count(user_id) -> int:
        return Follow.objects.following_of(user_id).count()

    @staticmethod
    def check_mutual_follow(user_a, user_b) -> bool:
        return Follow.objects.edge(user_a, user_b).exists() and Follow.objects.edge(user_b, user_a).exists()

    @staticmethod
    def following_feed_queryset(user_id):
        from posts.models import Post

        authors = Follow.objects.following_of(user_id).values("following_id")
        return Post.objects.visible_to(user_id).filter(author_id__in=authors).order_by("-created_at", "-id")

    @staticmethod
    def get_following_feed(user_id, offset: int = 0, limit: int = 20):
        return list(RelationshipService.following_feed_queryset(user_id)[offset : offset + limit])
