from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, OpenApiTypes, extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from common.paginations import OffsetLimitPagination
from common.results import raise_for_result
from common.schema import ErrorOut, MarkAllReadOut, SuccessOut, UnreadCountOut

from . import services
from .serializers import NotificationListIn, NotificationOut

NOTIFICATION_ID = OpenApiParameter(name="pk", location=OpenApiParameter.PATH, type=OpenApiTypes.UUID, description="알림 ID (UUID)")


@extend_schema_view(
    list=extend_schema(
        tags=["Notifications"],
        summary="내 알림 목록",
        description="최신순. `read=true|false` 로 읽음 여부를 거를 수 있습니다.",
        operation_id="notifications_list",
        parameters=[OpenApiParameter(name="read", location=OpenApiParameter.QUERY, type=OpenApiTypes.BOOL, required=False)],
        responses={200: OpenApiResponse(response=NotificationOut(many=True)), 401: OpenApiResponse(response=ErrorOut)},
    ),
    destroy=extend_schema(
        tags=["Notifications"],
        summary="알림 삭제",
        operation_id="notifications_destroy",
        parameters=[NOTIFICATION_ID],
        responses={204: OpenApiResponse(description="삭제 성공"), 401: OpenApiResponse(response=ErrorOut), 404: OpenApiResponse(response=ErrorOut)},
    ),
)
class NotificationViewSet(viewsets.GenericViewSet):
    """본인 알림만 다룬다. 모든 쓰기는 (id, user_id) 두 조건으로 제한된다."""

    permission_classes = [IsAuthenticated]
    serializer_class = NotificationOut
    pagination_class = OffsetLimitPagination
    lookup_value_regex = r"[0-9a-fA-F-]{36}"

    def list(self, request):
        params = NotificationListIn(data=request.query_params)
        params.is_valid(raise_exception=True)
        v = params.validated_data
        page = self.paginate_queryset(services.notifications_queryset(request.user.id, v.get("read")))
        return self.get_paginated_response(NotificationOut(page, many=True).data)

    def destroy(self, request, pk=None):
        raise_for_result(services.delete_notification(pk, request.user.id))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        tags=["Notifications"],
        summary="안 읽은 알림 개수",
        operation_id="notifications_unread_count",
        responses={200: OpenApiResponse(response=UnreadCountOut), 401: OpenApiResponse(response=ErrorOut)},
    )
    @action(detail=False, methods=["get"], url_path="unread-count")
    def unread_count(self, request):
        return Response({"unread_count": services.get_unread_notification_count(request.user.id)})

    @extend_schema(
        tags=["Notifications"],
        summary="알림 읽음 처리",
        description="이미 읽은 알림이면 아무 것도 바꾸지 않고 성공합니다.",
        operation_id="notifications_read",
        parameters=[NOTIFICATION_ID],
        request=None,
        responses={200: OpenApiResponse(response=SuccessOut), 401: OpenApiResponse(response=ErrorOut), 404: OpenApiResponse(response=ErrorOut)},
    )
    @action(detail=True, methods=["post"], url_path="read")
    def read(self, request, pk=None):
        raise_for_result(services.mark_notification_as_read(pk, request.user.id))
        return Response({"success": True})

    @extend_schema(
        tags=["Notifications"],
        summary="모든 알림 읽음 처리",
        operation_id="notifications_read_all",
        request=None,
        responses={200: OpenApiResponse(response=MarkAllReadOut), 401: OpenApiResponse(response=ErrorOut)},
    )
    @action(detail=False, methods=["post"], url_path="read-all")
    def read_all(self, request):
        res = services.mark_all_notifications_as_read(request.user.id)
        raise_for_result(res)
        return Response({"updated": res.updated})
