from drf_spectacular.utils import OpenApiExample, OpenApiParameter, OpenApiResponse, OpenApiTypes, extend_schema
from rest_framework import serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from common.paginations import OffsetLimitPagination
from common.results import raise_for_result
from common.schema import ErrorOut, FollowStatusOut, FollowToggleOut
from posts.serializers import PostSummaryOut
from profiles.serializers import ProfileSummarySerializer

from .services import RelationshipService

USER_ID = OpenApiParameter(name="pk", location=OpenApiParameter.PATH, type=OpenApiTypes.UUID, description="대상 사용자 ID (UUID)")
PAGING = [
    OpenApiParameter(name="offset", location=OpenApiParameter.QUERY, type=OpenApiTypes.INT, required=False),
    OpenApiParameter(name="limit", location=OpenApiParameter.QUERY, type=OpenApiTypes.INT, required=False),
]


class UserRelationViewSet(viewsets.ViewSet):
    """
    /api/v1/users/{pk}/follow          (POST: follow, DELETE: unfollow)
    /api/v1/users/{pk}/follow/toggle   (POST)
    /api/v1/users/{pk}/follow-status   (GET)
    /api/v1/users/{pk}/followers|following (GET)
    """

    permission_classes = [IsAuthenticated]
    lookup_value_regex = r"[0-9a-fA-F-]{36}"
    serializer_class = serializers.Serializer

    @extend_schema(
        tags=["Relations"],
        summary="사용자 팔로우",
        operation_id="users_follow",
        parameters=[USER_ID],
        request=None,
        responses={
            204: OpenApiResponse(description="팔로우 성공"),
            401: OpenApiResponse(response=ErrorOut),
            403: OpenApiResponse(response=ErrorOut, description="자기 자신 팔로우 또는 팔로우 비허용 사용자"),
            404: OpenApiResponse(response=ErrorOut, description="대상 사용자가 없음"),
            409: OpenApiResponse(response=ErrorOut, description="이미 팔로우 중"),
        },
        examples=[OpenApiExample("예시", value=None, request_only=True, description="POST /api/v1/users/{id}/follow")],
    )
    @action(detail=True, methods=["post"], url_path="follow")
    def follow(self, request, pk=None):
        raise_for_result(RelationshipService.follow_user(request.user.id, pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        tags=["Relations"],
        summary="사용자 언팔로우",
        description="팔로우 관계가 없어도 204 로 응답합니다(멱등).",
        operation_id="users_unfollow",
        parameters=[USER_ID],
        request=None,
        responses={204: OpenApiResponse(description="언팔로우 성공"), 401: OpenApiResponse(response=ErrorOut)},
        examples=[OpenApiExample("예시", value=None, request_only=True, description="DELETE /api/v1/users/{id}/follow")],
    )
    @follow.mapping.delete
    def unfollow(self, request, pk=None):
        raise_for_result(RelationshipService.unfollow_user(request.user.id, pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        tags=["Relations"],
        summary="팔로우 토글",
        operation_id="users_follow_toggle",
        parameters=[USER_ID],
        request=None,
        responses={200: OpenApiResponse(response=FollowToggleOut), 401: OpenApiResponse(response=ErrorOut), 403: OpenApiResponse(response=ErrorOut), 404: OpenApiResponse(response=ErrorOut)},
    )
    @action(detail=True, methods=["post"], url_path="follow/toggle")
    def toggle(self, request, pk=None):
        res = RelationshipService.toggle_follow(request.user.id, pk)
        raise_for_result(res)
        return Response({"is_following": res.is_following})

    @extend_schema(
        tags=["Relations"],
        summary="팔로우 상태",
        operation_id="users_follow_status",
        parameters=[USER_ID],
        responses={200: OpenApiResponse(response=FollowStatusOut), 401: OpenApiResponse(response=ErrorOut)},
    )
    @action(detail=True, methods=["get"], url_path="follow-status")
    def follow_status(self, request, pk=None):
        me = request.user.id
        is_following = RelationshipService.check_follow_status(me, pk)
        is_followed_by = RelationshipService.check_follow_status(pk, me)
        return Response({"is_following": is_following, "is_followed_by": is_followed_by, "is_mutual": is_following and is_followed_by})

    @extend_schema(
        tags=["Relations"],
        summary="팔로워 목록",
        description="`count` 는 전체 팔로워 수, `results` 는 비공개 프로필을 제외한 목록입니다.",
        operation_id="users_followers",
        parameters=[USER_ID, *PAGING],
        responses={200: OpenApiResponse(response=ProfileSummarySerializer(many=True), description="count/offset/limit/results"), 401: OpenApiResponse(response=ErrorOut)},
    )
    @action(detail=True, methods=["get"], url_path="followers")
    def followers(self, request, pk=None):
        paginator = OffsetLimitPagination()
        offset, limit = paginator.window(request)
        page = RelationshipService.get_followers(pk, offset=offset, limit=limit)
        return Response(paginator.page_body(ProfileSummarySerializer(page.items, many=True).data, page.total))

    @extend_schema(
        tags=["Relations"],
        summary="팔로잉 목록",
        description="`count` 는 전체 팔로잉 수, `results` 는 비공개 프로필을 제외한 목록입니다.",
        operation_id="users_following",
        parameters=[USER_ID, *PAGING],
        responses={200: OpenApiResponse(response=ProfileSummarySerializer(many=True), description="count/offset/limit/results"), 401: OpenApiResponse(response=ErrorOut)},
    )
    @action(detail=True, methods=["get"], url_path="following")
    def following(self, request, pk=None):
        paginator = OffsetLimitPagination()
        offset, limit = paginator.window(request)
        page = RelationshipService.get_following(pk, offset=offset, limit=limit)
        return Response(paginator.page_body(ProfileSummarySerializer(page.items, many=True).data, page.total))


class FollowingFeedView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["Relations"],
        summary="팔로잉 피드",
        description="내가 팔로우하는 사용자들의 볼 수 있는 글을 최신순으로 반환합니다.",
        operation_id="feed_following",
        parameters=PAGING,
        responses={200: OpenApiResponse(response=PostSummaryOut(many=True)), 401: OpenApiResponse(response=ErrorOut)},
    )
    def get(self, request):
        paginator = OffsetLimitPagination()
        page = paginator.paginate_queryset(RelationshipService.following_feed_queryset(request.user.id), request, view=self)
        return paginator.get_paginated_response(PostSummaryOut(page, many=True).data)
