from drf_spectacular.utils import OpenApiExample, OpenApiParameter, OpenApiResponse, OpenApiTypes, extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from common.results import raise_for_result
from common.schema import ErrorOut
from posts.services import get_post

from . import services
from .serializers import CommentIn, CommentOut

POST_ID = OpenApiParameter(name="post_id", location=OpenApiParameter.PATH, type=OpenApiTypes.UUID, description="대상 게시물 ID (UUID)")
COMMENT_ID = OpenApiParameter(name="pk", location=OpenApiParameter.PATH, type=OpenApiTypes.UUID, description="댓글 ID (UUID)")


@extend_schema_view(
    list=extend_schema(
        tags=["Comments"],
        summary="게시물의 댓글 목록",
        description="작성 시각 오름차순으로 반환합니다.",
        operation_id="post_comments_list",
        parameters=[POST_ID],
        responses={200: OpenApiResponse(response=CommentOut(many=True)), 401: OpenApiResponse(response=ErrorOut), 404: OpenApiResponse(response=ErrorOut)},
    ),
    create=extend_schema(
        tags=["Comments"],
        summary="게시물에 새 댓글 작성",
        description="앞뒤 공백을 제거한 뒤 1~500자만 허용합니다. 다른 사람 글이면 작성자에게 알림이 갑니다.",
        operation_id="post_comments_create",
        parameters=[POST_ID],
        request=CommentIn,
        responses={201: OpenApiResponse(response=CommentOut, description="생성된 댓글"), 400: OpenApiResponse(response=ErrorOut), 401: OpenApiResponse(response=ErrorOut), 404: OpenApiResponse(response=ErrorOut)},
        examples=[OpenApiExample("요청 예시", value={"content": "좋은 글이네요!"}, request_only=True)],
    ),
)
class PostCommentViewSet(viewsets.GenericViewSet):
    """
    /api/v1/posts/{post_id}/comments
    - GET: 해당 게시물의 댓글 목록
    - POST: 새 댓글 생성
    """

    permission_classes = [IsAuthenticated]
    serializer_class = CommentOut

    def get_serializer_class(self):
        return CommentIn if self.action == "create" else CommentOut

    def list(self, request, post_id=None):
        if get_post(post_id, request.user.id) is None:
            raise NotFound("Post not found.")
        return Response(CommentOut(services.get_comments_by_post(post_id), many=True).data)

    def create(self, request, post_id=None):
        ser = CommentIn(data=request.data)
        ser.is_valid(raise_exception=True)
        res = services.create_comment(post_id=post_id, author_id=request.user.id, content=ser.validated_data["content"])
        raise_for_result(res)
        return Response(CommentOut(res.comment).data, status=status.HTTP_201_CREATED)


@extend_schema_view(
    partial_update=extend_schema(
        tags=["Comments"],
        summary="댓글 수정(작성자 본인)",
        operation_id="comments_partial_update",
        parameters=[COMMENT_ID],
        request=CommentIn,
        responses={200: OpenApiResponse(response=CommentOut), 400: OpenApiResponse(response=ErrorOut), 403: OpenApiResponse(response=ErrorOut), 404: OpenApiResponse(response=ErrorOut)},
    ),
    destroy=extend_schema(
        tags=["Comments"],
        summary="댓글 삭제(작성자 본인)",
        operation_id="comments_destroy",
        parameters=[COMMENT_ID],
        responses={204: OpenApiResponse(description="삭제 성공"), 403: OpenApiResponse(response=ErrorOut), 404: OpenApiResponse(response=ErrorOut)},
    ),
)
class CommentViewSet(viewsets.GenericViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = CommentIn
    lookup_value_regex = r"[0-9a-fA-F-]{36}"

    def partial_update(self, request, pk=None):
        ser = CommentIn(data=request.data)
        ser.is_valid(raise_exception=True)
        res = services.edit_comment(pk, request.user.id, ser.validated_data["content"])
        raise_for_result(res)
        return Response(CommentOut(res.comment).data)

    def destroy(self, request, pk=None):
        raise_for_result(services.delete_comment(pk, request.user.id))
        return Response(status=status.HTTP_204_NO_CONTENT)
