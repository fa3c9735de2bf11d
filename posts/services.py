from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F, Max, Q

from common.results import BACKEND, FORBIDDEN, INVALID, NOT_FOUND
from notifications.models import NotificationType
from notifications.services import notify_best_effort
from profiles.models import Profile

from .models import ANONYMOUS_NAME, Post, PostLike, Visibility

log = logging.getLogger(__name__)

EXCERPT_LENGTH = 150
NUMBER_ATTEMPTS = 3
_TAG_RE = re.compile(r"<[^>]*>")

SORTS = {
    "newest": ("-created_at", "-id"),
    "oldest": ("created_at", "id"),
    "most_liked": ("-likes_count", "-created_at", "-id"),
    "most_commented": ("-comments_count", "-created_at", "-id"),
}


@dataclass(frozen=True)
class PostResult:
    success: bool
    post: Optional[Post] = None
    error: Optional[str] = None
    code: Optional[str] = None


@dataclass(frozen=True)
class LikeToggleResult:
    success: bool
    liked: bool = False
    likes_count: int = 0
    error: Optional[str] = None
    code: Optional[str] = None


def generate_excerpt(content: str, max_length: int = EXCERPT_LENGTH) -> str:
    # 태그 제거 + 공백 정리 후 max_length 초과분은 "..." 로 자른다
    text = " ".join(_TAG_RE.sub("", content or "").split())
    if len(text) <= max_length:
        return text
    return text[:max_length].rstrip() + "..."


def _next_post_number(author_id) -> int:
    current = Post.objects.by_author(author_id).aggregate(n=Max("post_number"))["n"]
    return (current or 0) + 1


def create_post(*, author_id, title: str, content: str, is_anonymous: bool = False, visibility: str = Visibility.PUBLIC) -> PostResult:
    title = (title or "").strip()
    content = (content or "").strip()
    if not title:
        return PostResult(success=False, error="Title is required.", code=INVALID)
    if not content:
        return PostResult(success=False, error="Content is required.", code=INVALID)
    if visibility not in Visibility.values:
        return PostResult(success=False, error="Invalid visibility.", code=INVALID)

    try:
        profile = Profile.objects.filter(user_id=author_id).first()
        if profile is None:
            return PostResult(success=False, error="User not found.", code=NOT_FOUND)

        fields = dict(title=title, content=content, excerpt=generate_excerpt(content), is_anonymous=is_anonymous, visibility=visibility)
        if is_anonymous:
            with transaction.atomic():
                post = Post.objects.create(author=None, author_name=ANONYMOUS_NAME, post_number=None, **fields)
            return PostResult(success=True, post=post)

        for attempt in range(NUMBER_ATTEMPTS):
            try:
                with transaction.atomic():
                    post = Post.objects.create(author_id=author_id, author_name=profile.username, post_number=_next_post_number(author_id), **fields)
                return PostResult(success=True, post=post)
            except IntegrityError:
                # 같은 작성자의 동시 작성으로 post_number 충돌
                log.warning("post_number collision author=%s attempt=%d", author_id, attempt + 1)
        return PostResult(success=False, error="Failed to create post.", code=BACKEND)
    except DatabaseError:
        log.exception("create_post failed author=%s", author_id)
        return PostResult(success=False, error="Failed to create post.", code=BACKEND)


def _owned_post(post_id, user_id, verb: str) -> Tuple[Optional[Post], Optional[PostResult]]:
    post = Post.objects.filter(pk=post_id).first()
    if post is None:
        return None, PostResult(success=False, error="Post not found.", code=NOT_FOUND)
    # 익명 글(author 없음)은 누구도 수정/삭제할 수 없다
    if post.author_id is None or str(post.author_id) != str(user_id):
        return None, PostResult(success=False, error=f"You can only {verb} your own posts.", code=FORBIDDEN)
    return post, None


def update_post(post_id, user_id, *, title: Optional[str] = None, content: Optional[str] = None, visibility: Optional[str] = None) -> PostResult:
    try:
        post, denied = _owned_post(post_id, user_id, "edit")
        if denied:
            return denied

        changed = []
        if title is not None:
            if not title.strip():
                return PostResult(success=False, error="Title is required.", code=INVALID)
            post.title = title.strip()
            changed.append("title")
        if content is not None:
            if not content.strip():
                return PostResult(success=False, error="Content is required.", code=INVALID)
            post.content = content.strip()
            post.excerpt = generate_excerpt(post.content)
            changed += ["content", "excerpt"]
        if visibility is not None:
            if visibility not in Visibility.values:
                return PostResult(success=False, error="Invalid visibility.", code=INVALID)
            post.visibility = visibility
            changed.append("visibility")

        if changed:
            post.save(update_fields=changed + ["updated_at"])
    except DatabaseError:
        log.exception("update_post failed post=%s user=%s", post_id, user_id)
        return PostResult(success=False, error="Failed to update post.", code=BACKEND)
    return PostResult(success=True, post=post)


def delete_post(post_id, user_id) -> PostResult:
    try:
        post, denied = _owned_post(post_id, user_id, "delete")
        if denied:
            return denied
        post.delete()
    except DatabaseError:
        log.exception("delete_post failed post=%s user=%s", post_id, user_id)
        return PostResult(success=False, error="Failed to delete post.", code=BACKEND)
    return PostResult(success=True)


# ---- 조회 ----
def get_post(post_id, viewer_id=None) -> Optional[Post]:
    return Post.objects.visible_to(viewer_id).filter(pk=post_id).first()


def get_post_by_number(username: str, post_number: int, viewer_id=None) -> Optional[Post]:
    return Post.objects.visible_to(viewer_id).filter(author__profile__username=username, post_number=post_number).first()


def posts_queryset(viewer_id=None, *, author_id=None, search: Optional[str] = None, sort: str = "newest"):
    qs = Post.objects.visible_to(viewer_id)
    if author_id:
        qs = qs.filter(author_id=author_id)
    if search:
        qs = qs.filter(Q(title__icontains=search) | Q(content__icontains=search))
    return qs.order_by(*SORTS.get(sort, SORTS["newest"]))


def list_posts(viewer_id=None, *, author_id=None, search: Optional[str] = None, sort: str = "newest", offset: int = 0, limit: int = 20) -> Tuple[List[Post], int]:
    qs = posts_queryset(viewer_id, author_id=author_id, search=search, sort=sort)
    return list(qs[offset : offset + limit]), qs.count()


def get_post_count_by_author(author_id) -> int:
    return Post.objects.by_author(author_id).count()


def check_user_liked_post(post_id, user_id) -> bool:
    return PostLike.objects.edge(user_id, post_id).exists()


def liked_posts_queryset(user_id):
    return Post.objects.visible_to(user_id).filter(likes__user_id=user_id).order_by("-likes__created_at")


def get_liked_posts(user_id, offset: int = 0, limit: int = 20) -> List[Post]:
    return list(liked_posts_queryset(user_id)[offset : offset + limit])


def _likes_count(post_id) -> int:
    return Post.objects.filter(pk=post_id).values_list("likes_count", flat=True).first() or 0


# ---- 좋아요 ----
def _notify_post_like(post_id, liker_id) -> None:
    # 부수효과: 어떤 실패도 좋아요 결과에 영향을 주지 않는다
    try:
        post = Post.objects.filter(pk=post_id).only("id", "author_id", "title").first()
        if post is None or post.author_id is None or str(post.author_id) == str(liker_id):
            return
        liker = Profile.objects.filter(user_id=liker_id).first()
        if liker is None:
            log.warning("liker %s has no profile; skip POST_LIKE", liker_id)
            return
    except DatabaseError:
        log.exception("POST_LIKE lookup failed post=%s liker=%s", post_id, liker_id)
        return

    notify_best_effort(
        user_id=post.author_id,
        actor_id=liker_id,
        actor_name=liker.username,
        actor_avatar_url=liker.avatar_url,
        type=NotificationType.POST_LIKE,
        title=f"{liker.username}님이 회원님의 글을 좋아합니다",
        message=post.title,
        post_id=post.id,
    )


def toggle_post_like(post_id, user_id) -> LikeToggleResult:
    """
    (user, post) 유니크 엣지 토글.
    삭제를 먼저 시도하고, 지운 게 없으면 삽입한다. 삽입 시 유니크 위반은 '이미 좋아요' 상태로 본다.
    """
    try:
        if not Post.objects.visible_to(user_id).filter(pk=post_id).exists():
            return LikeToggleResult(success=False, error="Post not found.", code=NOT_FOUND)

        with transaction.atomic():
            deleted, _ = PostLike.objects.edge(user_id, post_id).delete()
            if deleted:
                Post.objects.filter(pk=post_id, likes_count__gt=0).update(likes_count=F("likes_count") - 1)
        if deleted:
            return LikeToggleResult(success=True, liked=False, likes_count=_likes_count(post_id))

        try:
            with transaction.atomic():
                PostLike.objects.create(user_id=user_id, post_id=post_id)
                Post.objects.filter(pk=post_id).update(likes_count=F("likes_count") + 1)
        except IntegrityError:
            # 동시 요청이 먼저 좋아요를 넣었다. 알림은 그쪽에서 처리
            return LikeToggleResult(success=True, liked=True, likes_count=_likes_count(post_id))
        likes = _likes_count(post_id)
    except DatabaseError:
        log.exception("toggle_post_like failed post=%s user=%s", post_id, user_id)
        return LikeToggleResult(success=False, error="Failed to update like.", code=BACKEND)

    _notify_post_like(post_id, user_id)
    return LikeToggleResult(success=True, liked=True, likes_count=likes)
