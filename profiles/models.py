from django.contrib.auth import get_user_model
from django.db import models

User = get_user_model()


class Profile(models.Model):
    # 인증 주체와 같은 id 를 쓰도록 user 를 PK 로 둔다
    user = models.OneToOneField(User, primary_key=True, related_name="profile", on_delete=models.CASCADE)
    username = models.CharField(max_length=20, unique=True)
    display_name = models.CharField(max_length=50, blank=True, default="")
    bio = models.TextField(blank=True, default="")
    avatar_url = models.URLField(max_length=500, null=True, blank=True)
    is_private = models.BooleanField(default=False)
    allow_follow = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "profiles"
        indexes = [
            models.Index(fields=["is_private"], name="idx_profiles_private"),
        ]

    def __str__(self):
        return f"{self.username} ({self.user_id})"

    @property
    def id(self):
        return self.user_id
