from django.urls import path
from rest_framework.routers import SimpleRouter

from .views import PostByNumberView, PostViewSet

router = SimpleRouter(trailing_slash=False)
router.register(r"posts", PostViewSet, basename="posts")

urlpatterns = [
    path("users/<str:username>/posts/<int:post_number>", PostByNumberView.as_view(), name="posts-by-number"),
] + router.urls
