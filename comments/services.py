import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone

from common.results import BACKEND, FORBIDDEN, INVALID, NOT_FOUND
from notifications.models import NotificationType
from notifications.services import notify_best_effort
from posts.models import Post
from profiles.models import Profile

from .models import COMMENT_MAX_LENGTH, Comment

log = logging.getLogger(__name__)

PREVIEW_LENGTH = 50


@dataclass(frozen=True)
class CommentResult:
    success: bool
    comment: Optional[Comment] = None
    error: Optional[str] = None
    code: Optional[str] = None


def validate_content(content: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """(정리된 content, 오류 메시지) 반환."""
    text = (content or "").strip()
    if not text:
        return None, "Comment must not be empty."
    if len(text) > COMMENT_MAX_LENGTH:
        return None, f"Comment must be {COMMENT_MAX_LENGTH} characters or fewer."
    return text, None


def message_preview(content: str, length: int = PREVIEW_LENGTH) -> str:
    return content if len(content) <= length else content[:length] + "..."


def _notify_comment(comment: Comment) -> None:
    try:
        post = Post.objects.filter(pk=comment.post_id).only("id", "author_id").first()
        if post is None or post.author_id is None or post.author_id == comment.author_id:
            return
        commenter = Profile.objects.filter(user_id=comment.author_id).first()
    except DatabaseError:
        log.exception("COMMENT lookup failed comment=%s", comment.id)
        return

    notify_best_effort(
        user_id=post.author_id,
        actor_id=comment.author_id,
        actor_name=comment.author_name,
        actor_avatar_url=commenter.avatar_url if commenter else None,
        type=NotificationType.COMMENT,
        title=f"{comment.author_name}님이 댓글을 남겼습니다",
        message=message_preview(comment.content),
        post_id=post.id,
        comment_id=comment.id,
    )


def create_comment(*, post_id, author_id, content: str, author_name: Optional[str] = None) -> CommentResult:
    text, error = validate_content(content)
    if error:
        return CommentResult(success=False, error=error, code=INVALID)

    try:
        if not Post.objects.visible_to(author_id).filter(pk=post_id).exists():
            return CommentResult(success=False, error="Post not found.", code=NOT_FOUND)
        if not author_name:
            profile = Profile.objects.filter(user_id=author_id).only("username").first()
            if profile is None:
                return CommentResult(success=False, error="User not found.", code=NOT_FOUND)
            author_name = profile.username

        with transaction.atomic():
            comment = Comment.objects.create(post_id=post_id, author_id=author_id, author_name=author_name, content=text)
            Post.objects.filter(pk=post_id).update(comments_count=F("comments_count") + 1)
    except DatabaseError:
        log.exception("create_comment failed post=%s author=%s", post_id, author_id)
        return CommentResult(success=False, error="Failed to create comment.", code=BACKEND)

    _notify_comment(comment)
    return CommentResult(success=True, comment=comment)


def _owned_comment(comment_id, user_id, verb: str) -> Tuple[Optional[Comment], Optional[CommentResult]]:
    comment = Comment.objects.filter(pk=comment_id).first()
    if comment is None:
        return None, CommentResult(success=False, error="Comment not found.", code=NOT_FOUND)
    if str(comment.author_id) != str(user_id):
        return None, CommentResult(success=False, error=f"You can only {verb} your own comments.", code=FORBIDDEN)
    return comment, None


def edit_comment(comment_id, user_id, content: str) -> CommentResult:
    try:
        comment, denied = _owned_comment(comment_id, user_id, "edit")
        if denied:
            return denied
        text, error = validate_content(content)
        if error:
            return CommentResult(success=False, error=error, code=INVALID)

        comment.content = text
        comment.is_edited = True
        comment.updated_at = timezone.now()
        comment.save(update_fields=["content", "is_edited", "updated_at"])
    except DatabaseError:
        log.exception("edit_comment failed comment=%s user=%s", comment_id, user_id)
        return CommentResult(success=False, error="Failed to edit comment.", code=BACKEND)
    return CommentResult(success=True, comment=comment)


def delete_comment(comment_id, user_id) -> CommentResult:
    try:
        comment, denied = _owned_comment(comment_id, user_id, "delete")
        if denied:
            return denied
        with transaction.atomic():
            comment.delete()
            Post.objects.filter(pk=comment.post_id, comments_count__gt=0).update(comments_count=F("comments_count") - 1)
    except DatabaseError:
        log.exception("delete_comment failed comment=%s user=%s", comment_id, user_id)
        return CommentResult(success=False, error="Failed to delete comment.", code=BACKEND)
    return CommentResult(success=True)


def get_comments_by_post(post_id) -> List[Comment]:
    return list(Comment.objects.for_post(post_id))


def get_comment_count(post_id) -> int:
    return Comment.objects.filter(post_id=post_id).count()
