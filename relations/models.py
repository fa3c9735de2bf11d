import uuid

from django.contrib.auth import get_user_model
from django.db import models
from django.db.models import F, Q

User = get_user_model()


class FollowQuerySet(models.QuerySet):
    def edge(self, follower_id, following_id):
        return self.filter(follower_id=follower_id, following_id=following_id)

    def followers_of(self, user_id):
        return self.filter(following_id=user_id)

    def following_of(self, user_id):
        return self.filter(follower_id=user_id)

    def in_edge_order(self):
        return self.order_by("created_at", "id")


class Follow(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    follower = models.ForeignKey(User, related_name="following", on_delete=models.CASCADE, db_index=True)
    following = models.ForeignKey(User, related_name="followers", on_delete=models.CASCADE, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = FollowQuerySet.as_manager()

    class Meta:
        db_table = "follows"
        constraints = [
            models.UniqueConstraint(fields=["follower", "following"], name="uq_follows_pair"),
            models.CheckConstraint(condition=~Q(follower=F("following")), name="ck_follows_not_self"),
        ]
        indexes = [
            models.Index(fields=["follower", "created_at"], name="idx_follows_follower"),
            models.Index(fields=["following", "created_at"], name="idx_follows_following"),
        ]

    def __str__(self):
        return f"{self.follower_id} -> {self.following_id}"
