from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import serializers, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from common.schema import RealtimeCapabilitiesOut

CAPABILITIES = {
    "websocket_url": "/ws/notifications/",
    "auth": {"query_string": "?token=<JWT_ACCESS_TOKEN>", "subprotocol": "<JWT_ACCESS_TOKEN>"},
    "events": [
        {"type": "snapshot", "direction": "server->client", "example": {"event": "snapshot", "data": {"state": "ready", "notifications": [], "unread_count": 0}}},
        {"type": "state", "direction": "server->client", "desc": "푸시/읽음 처리 반영 후 전체 상태"},
        {"type": "error", "direction": "server->client", "example": {"event": "error", "data": {"detail": "Notification not found."}}},
        {"type": "mark_read", "direction": "client->server", "example": {"type": "mark_read", "id": "uuid"}},
        {"type": "mark_all_read", "direction": "client->server", "example": {"type": "mark_all_read"}},
        {"type": "ping", "direction": "client->server", "example": {"type": "ping"}},
        {"type": "pong", "direction": "server->client", "example": {"event": "pong"}},
    ],
    "close_codes": {"4401": "Unauthorized (scope['user_id'] missing)"},
    "notes": [
        "연결 직후 최근 10개 알림과 안 읽은 개수를 snapshot 으로 내려줍니다.",
        "같은 알림의 읽음 처리가 로컬/푸시로 두 번 도착해도 카운트는 한 번만 줄어듭니다.",
    ],
}


class RealtimeDocViewSet(viewsets.ViewSet):
    """WebSocket 계약을 Swagger/Redoc 에서 발견할 수 있게 해주는 문서 전용 뷰."""

    permission_classes = [IsAuthenticated]
    serializer_class = serializers.Serializer

    @extend_schema(
        tags=["Realtime"],
        summary="알림 WebSocket 연결 가이드",
        operation_id="realtime_notifications_capabilities",
        responses={200: OpenApiResponse(response=RealtimeCapabilitiesOut)},
    )
    @action(detail=False, methods=["get"], url_path="capabilities")
    def capabilities(self, request):
        return Response(CAPABILITIES)
