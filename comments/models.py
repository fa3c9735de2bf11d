import uuid

from django.conf import settings
from django.db import models

COMMENT_MAX_LENGTH = 500


class CommentQuerySet(models.QuerySet):
    def for_post(self, post_id):
        return self.filter(post_id=post_id).order_by("created_at", "id")


class Comment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    post = models.ForeignKey("posts.Post", on_delete=models.CASCADE, related_name="comments")
    author = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="comments")
    author_name = models.CharField(max_length=50)
    content = models.CharField(max_length=COMMENT_MAX_LENGTH)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(null=True, blank=True)
    is_edited = models.BooleanField(default=False)

    objects = CommentQuerySet.as_manager()

    class Meta:
        db_table = "comments"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["post", "created_at"]),
            models.Index(fields=["author", "created_at"]),
        ]

    def __str__(self):
        return f"Comment({self.id}) by {self.author_id} on post {self.post_id}"
