from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView, SpectacularRedocView

from profiles.views import FixProfileView, OrphanedAccountsView

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/v1/", include("users.urls")),
    path("api/v1/", include("profiles.urls")),
    path("api/v1/", include("relations.urls")),
    path("api/v1/", include("posts.urls")),
    path("api/v1/", include("comments.urls")),
    path("api/v1/", include("notifications.urls")),
    path("api/v1/", include("realtime.urls")),
    # 계정 유지보수
    path("api/fix-profile", FixProfileView.as_view(), name="fix-profile"),
    path("api/orphaned-accounts", OrphanedAccountsView.as_view(), name="orphaned-accounts"),
    # OpenAPI schema & docs
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("api/redoc/", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
]
