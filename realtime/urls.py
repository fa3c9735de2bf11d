from rest_framework.routers import SimpleRouter

from .views import RealtimeDocViewSet

router = SimpleRouter(trailing_slash=False)
router.register("realtime", RealtimeDocViewSet, basename="realtime")

urlpatterns = router.urls
