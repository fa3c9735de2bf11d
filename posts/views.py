from drf_spectacular.utils import OpenApiExample, OpenApiParameter, OpenApiResponse, OpenApiTypes, extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from common.paginations import OffsetLimitPagination
from common.results import raise_for_result
from common.schema import ErrorOut, LikeToggleOut

from . import services
from .serializers import PostCreateIn, PostListIn, PostOut, PostSummaryOut, PostUpdateIn

POST_ID = OpenApiParameter(name="pk", location=OpenApiParameter.PATH, type=OpenApiTypes.UUID, description="포스트 ID (UUID)")


def _visible_post(pk, viewer_id):
    post = services.get_post(pk, viewer_id)
    if post is None:
        raise NotFound("Post not found.")
    return post


@extend_schema_view(
    create=extend_schema(
        tags=["Posts"],
        summary="새 글 작성",
        description=(
            "제목과 본문으로 글을 작성합니다.\n"
            "- `is_anonymous=true` 이면 작성자 없이 `익명` 으로 저장되고 글 번호가 부여되지 않습니다.\n"
            "- 요약(excerpt)은 본문에서 태그를 제거해 최대 150자로 만듭니다."
        ),
        operation_id="posts_create",
        request=PostCreateIn,
        responses={201: OpenApiResponse(response=PostOut, description="생성된 글"), 400: OpenApiResponse(response=ErrorOut), 401: OpenApiResponse(response=ErrorOut)},
        examples=[OpenApiExample("요청 예시", value={"title": "오늘의 불안", "content": "<p>잠이 안 온다</p>", "visibility": "public"}, request_only=True)],
    ),
    retrieve=extend_schema(
        tags=["Posts"],
        summary="글 단건 조회",
        operation_id="posts_retrieve",
        parameters=[POST_ID],
        responses={200: OpenApiResponse(response=PostOut), 401: OpenApiResponse(response=ErrorOut), 404: OpenApiResponse(response=ErrorOut)},
    ),
    list=extend_schema(
        tags=["Posts"],
        summary="글 목록",
        description="볼 수 있는 글을 정렬/검색/작성자 필터와 offset/limit 으로 조회합니다.",
        operation_id="posts_list",
        parameters=[
            OpenApiParameter(name="author_id", location=OpenApiParameter.QUERY, type=OpenApiTypes.UUID, required=False),
            OpenApiParameter(name="search", location=OpenApiParameter.QUERY, type=OpenApiTypes.STR, required=False, description="제목/본문 부분 일치"),
            OpenApiParameter(name="sort", location=OpenApiParameter.QUERY, type=OpenApiTypes.STR, required=False, enum=list(services.SORTS)),
        ],
        responses={200: OpenApiResponse(response=PostSummaryOut(many=True), description="count/offset/limit/results"), 401: OpenApiResponse(response=ErrorOut)},
    ),
    partial_update=extend_schema(
        tags=["Posts"],
        summary="글 수정(작성자 본인)",
        operation_id="posts_partial_update",
        parameters=[POST_ID],
        request=PostUpdateIn,
        responses={200: OpenApiResponse(response=PostOut), 400: OpenApiResponse(response=ErrorOut), 403: OpenApiResponse(response=ErrorOut), 404: OpenApiResponse(response=ErrorOut)},
    ),
    destroy=extend_schema(
        tags=["Posts"],
        summary="글 삭제(작성자 본인)",
        operation_id="posts_destroy",
        parameters=[POST_ID],
        responses={204: OpenApiResponse(description="삭제 성공"), 403: OpenApiResponse(response=ErrorOut), 404: OpenApiResponse(response=ErrorOut)},
    ),
)
class PostViewSet(viewsets.GenericViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = PostOut
    pagination_class = OffsetLimitPagination
    lookup_value_regex = r"[0-9a-fA-F-]{36}"

    def get_serializer_class(self):
        if self.action == "create":
            return PostCreateIn
        if self.action == "partial_update":
            return PostUpdateIn
        if self.action in ("list", "liked"):
            return PostSummaryOut
        return PostOut

    def list(self, request):
        params = PostListIn(data=request.query_params)
        params.is_valid(raise_exception=True)
        v = params.validated_data
        qs = services.posts_queryset(request.user.id, author_id=v.get("author_id"), search=v.get("search"), sort=v["sort"])
        page = self.paginate_queryset(qs)
        return self.get_paginated_response(PostSummaryOut(page, many=True).data)

    def create(self, request):
        ser = PostCreateIn(data=request.data)
        ser.is_valid(raise_exception=True)
        res = services.create_post(author_id=request.user.id, **ser.validated_data)
        raise_for_result(res)
        return Response(PostOut(res.post).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        return Response(PostOut(_visible_post(pk, request.user.id)).data)

    def partial_update(self, request, pk=None):
        ser = PostUpdateIn(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        res = services.update_post(pk, request.user.id, **ser.validated_data)
        raise_for_result(res)
        return Response(PostOut(res.post).data)

    def destroy(self, request, pk=None):
        raise_for_result(services.delete_post(pk, request.user.id))
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ================= 좋아요 =================
    @extend_schema(
        tags=["Posts/Engagements"],
        summary="내 좋아요 여부",
        operation_id="posts_like_status",
        parameters=[POST_ID],
        responses={200: OpenApiResponse(response=LikeToggleOut), 401: OpenApiResponse(response=ErrorOut), 404: OpenApiResponse(response=ErrorOut)},
    )
    @action(detail=True, methods=["get"], url_path="like")
    def like(self, request, pk=None):
        post = _visible_post(pk, request.user.id)
        return Response({"liked": services.check_user_liked_post(post.id, request.user.id), "likes_count": post.likes_count})

    @extend_schema(
        tags=["Posts/Engagements"],
        summary="좋아요 토글",
        description="좋아요가 있으면 취소하고, 없으면 추가합니다. 다른 사람 글에 좋아요하면 작성자에게 알림이 갑니다.",
        operation_id="posts_like_toggle",
        parameters=[POST_ID],
        request=None,
        responses={200: OpenApiResponse(response=LikeToggleOut), 401: OpenApiResponse(response=ErrorOut), 404: OpenApiResponse(response=ErrorOut), 503: OpenApiResponse(response=ErrorOut)},
    )
    @like.mapping.post
    def toggle_like(self, request, pk=None):
        res = services.toggle_post_like(pk, request.user.id)
        raise_for_result(res)
        return Response({"liked": res.liked, "likes_count": res.likes_count})

    @extend_schema(
        tags=["Posts/Engagements"],
        summary="내가 좋아요한 글",
        operation_id="posts_liked",
        parameters=[
            OpenApiParameter(name="offset", location=OpenApiParameter.QUERY, type=OpenApiTypes.INT, required=False),
            OpenApiParameter(name="limit", location=OpenApiParameter.QUERY, type=OpenApiTypes.INT, required=False),
        ],
        responses={200: OpenApiResponse(response=PostSummaryOut(many=True)), 401: OpenApiResponse(response=ErrorOut)},
    )
    @action(detail=False, methods=["get"], url_path="liked")
    def liked(self, request):
        page = self.paginate_queryset(services.liked_posts_queryset(request.user.id))
        return self.get_paginated_response(PostSummaryOut(page, many=True).data)


class PostByNumberView(APIView):
    """/users/{username}/posts/{number}: 작성자별 글 번호로 조회."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["Posts"],
        summary="작성자 글 번호로 조회",
        operation_id="posts_by_number",
        responses={200: OpenApiResponse(response=PostOut), 404: OpenApiResponse(response=ErrorOut)},
    )
    def get(self, request, username, post_number):
        post = services.get_post_by_number(username, post_number, request.user.id)
        if post is None:
            raise NotFound("Post not found.")
        return Response(PostOut(post).data)
