from django.urls import path
from rest_framework.routers import SimpleRouter

from .views import FollowingFeedView, UserRelationViewSet

router = SimpleRouter(trailing_slash=False)
router.register(r"users", UserRelationViewSet, basename="user-relations")

urlpatterns = [
    path("feed/following", FollowingFeedView.as_view(), name="feed-following"),
] + router.urls
