from rest_framework import serializers

from .models import COMMENT_MAX_LENGTH, Comment


class CommentIn(serializers.Serializer):
    # 길이/공백 검사는 서비스에서 통일된 문구로 처리하므로 여기서는 여유 있게 받는다
    content = serializers.CharField(allow_blank=True, trim_whitespace=False, max_length=COMMENT_MAX_LENGTH * 4)


class CommentOut(serializers.ModelSerializer):
    post_id = serializers.UUIDField(read_only=True)
    author_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Comment
        fields = ("id", "post_id", "author_id", "author_name", "content", "created_at", "updated_at", "is_edited")
        read_only_fields = fields
