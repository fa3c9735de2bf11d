from django.contrib import admin

from .models import Post


@admin.register(Post)
class PostAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "author_name", "post_number", "visibility", "likes_count", "comments_count", "created_at")
    list_filter = ("visibility", "is_anonymous", "created_at")
    search_fields = ("id", "title", "author_name")
    ordering = ("-created_at",)
