from posts.models import Post
from relations.models import Follow


def get_user_stats(user_id) -> dict:
    # 카운트는 프라이버시 필터 없이 정확한 값
    return {
        "post_count": Post.objects.filter(author_id=user_id).count(),
        "follower_count": Follow.objects.followers_of(user_id).count(),
        "following_count": Follow.objects.following_of(user_id).count(),
    }
