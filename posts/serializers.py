from rest_framework import serializers

from .models import Visibility
from .services import SORTS


class PostCreateIn(serializers.Serializer):
    # allow_blank=True 로 필드 단계의 기본 블랭크 에러를 우회하고, 서비스에서 통일된 문구로 검증
    title = serializers.CharField(max_length=200, allow_blank=True, trim_whitespace=True)
    content = serializers.CharField(max_length=20000, allow_blank=True, trim_whitespace=True)
    is_anonymous = serializers.BooleanField(required=False, default=False)
    visibility = serializers.ChoiceField(choices=Visibility.choices, required=False, default=Visibility.PUBLIC)


class PostUpdateIn(serializers.Serializer):
    title = serializers.CharField(max_length=200, required=False, allow_blank=True)
    content = serializers.CharField(max_length=20000, required=False, allow_blank=True)
    visibility = serializers.ChoiceField(choices=Visibility.choices, required=False)


class PostListIn(serializers.Serializer):
    author_id = serializers.UUIDField(required=False)
    search = serializers.CharField(required=False, allow_blank=True, max_length=100)
    sort = serializers.ChoiceField(choices=list(SORTS), required=False, default="newest")


class PostOut(serializers.Serializer):
    id = serializers.UUIDField()
    title = serializers.CharField()
    content = serializers.CharField()
    excerpt = serializers.CharField()
    author = serializers.UUIDField(source="author_id", allow_null=True)
    author_name = serializers.CharField()
    post_number = serializers.IntegerField(allow_null=True)
    is_anonymous = serializers.BooleanField()
    visibility = serializers.CharField()
    likes_count = serializers.IntegerField()
    comments_count = serializers.IntegerField()
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()


class PostSummaryOut(serializers.Serializer):
    id = serializers.UUIDField()
    title = serializers.CharField()
    excerpt = serializers.CharField()
    author = serializers.UUIDField(source="author_id", allow_null=True)
    author_name = serializers.CharField()
    post_number = serializers.IntegerField(allow_null=True)
    likes_count = serializers.IntegerField()
    comments_count = serializers.IntegerField()
    created_at = serializers.DateTimeField()
