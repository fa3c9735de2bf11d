import uuid

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone


class NotificationType(models.TextChoices):
    NEW_FOLLOWER = "NEW_FOLLOWER", "New follower"
    POST_LIKE = "POST_LIKE", "Post like"
    COMMENT = "COMMENT", "Comment"
    COMMENT_LIKE = "COMMENT_LIKE", "Comment like"
    MENTION = "MENTION", "Mention"


class NotificationQuerySet(models.QuerySet):
    def for_user(self, user_id):
        return self.filter(user_id=user_id)

    def unread(self):
        return self.filter(is_read=False)

    def owned(self, notification_id, user_id):
        # id 와 수신자 둘 다 일치해야 한다
        return self.filter(id=notification_id, user_id=user_id)

    def newest_first(self):
        return self.order_by("-created_at", "-id")


class Notification(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="notifications", db_index=True)
    actor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    actor_name = models.CharField(max_length=50)
    actor_avatar_url = models.URLField(max_length=500, null=True, blank=True)
    type = models.CharField(max_length=16, choices=NotificationType.choices)
    title = models.CharField(max_length=200)
    message = models.TextField(null=True, blank=True)
    post = models.ForeignKey("posts.Post", on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    comment = models.ForeignKey("comments.Comment", on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    objects = NotificationQuerySet.as_manager()

    class Meta:
        db_table = "notifications"
        constraints = [
            models.CheckConstraint(condition=Q(actor__isnull=True) | ~Q(actor=F("user")), name="ck_notifications_not_self"),
        ]
        indexes = [models.Index(fields=["user", "is_read", "-created_at"])]

    def __str__(self):
        return f"{self.type} -> {self.user_id}"
