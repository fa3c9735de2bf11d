import uuid

from django.conf import settings
from django.db import models
from django.db.models import Exists, OuterRef, Q

ANONYMOUS_NAME = "익명"


class Visibility(models.TextChoices):
    PUBLIC = "public", "Public"
    FOLLOWERS = "followers", "Followers"
    PRIVATE = "private", "Private"


class PostQuerySet(models.QuerySet):
    def visible_to(self, viewer_id=None):
        """공개 글 + (로그인 시) 내 글 + 내가 팔로우하는 작성자의 팔로워 공개 글."""
        q = Q(visibility=Visibility.PUBLIC)
        if viewer_id:
            from relations.models import Follow

            followed = Follow.objects.filter(follower_id=viewer_id, following_id=OuterRef("author_id"))
            q |= Q(author_id=viewer_id) | (Q(visibility=Visibility.FOLLOWERS) & Q(Exists(followed)))
        return self.filter(q)

    def by_author(self, author_id):
        return self.filter(author_id=author_id)


class Post(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=200)
    content = models.TextField()
    excerpt = models.CharField(max_length=160, blank=True, default="")
    # null 이면 익명 글
    author = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, null=True, blank=True, related_name="posts", db_index=True)
    author_name = models.CharField(max_length=50)
    post_number = models.PositiveIntegerField(null=True, blank=True)
    is_anonymous = models.BooleanField(default=False)
    visibility = models.CharField(max_length=16, choices=Visibility.choices, default=Visibility.PUBLIC)
    likes_count = models.PositiveIntegerField(default=0)
    comments_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = PostQuerySet.as_manager()

    class Meta:
        db_table = "posts"
        ordering = ("-created_at",)
        constraints = [
            models.UniqueConstraint(fields=["author", "post_number"], condition=Q(author__isnull=False), name="uq_posts_author_number"),
            models.CheckConstraint(condition=Q(is_anonymous=False) | Q(author__isnull=True, author_name=ANONYMOUS_NAME), name="ck_posts_anonymous_author"),
        ]
        indexes = [
            models.Index(fields=["author", "-created_at"], name="idx_post_author_created"),
            models.Index(fields=["visibility", "-created_at"], name="idx_post_visibility_created"),
        ]

    def __str__(self):
        return f"Post<{self.id}> by {self.author_id or ANONYMOUS_NAME}"


class PostLikeQuerySet(models.QuerySet):
    def edge(self, user_id, post_id):
        return self.filter(user_id=user_id, post_id=post_id)


class PostLike(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    post = models.ForeignKey("posts.Post", on_delete=models.CASCADE, related_name="likes")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="post_likes")
    created_at = models.DateTimeField(auto_now_add=True)

    objects = PostLikeQuerySet.as_manager()

    class Meta:
        db_table = "post_likes"
        constraints = [
            models.UniqueConstraint(fields=["user", "post"], name="uniq_post_like_user"),
        ]
        indexes = [
            models.Index(fields=["post", "user"]),
            models.Index(fields=["user", "created_at"]),
        ]
