import uuid

from django.db.models import Count, Exists, OuterRef
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, OpenApiResponse, OpenApiTypes, extend_schema, extend_schema_view
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from common.results import raise_for_result
from common.schema import AvailabilityOut, ErrorOut, FixProfileOut, OrphanedAccountsOut, SuccessOut, UserStatsOut
from common.throttling import WindowRateThrottle
from relations.models import Follow

from .models import Profile
from .serializers import ProfileCreateSerializer, ProfileReadSerializer, ProfileUpdateSerializer
from .services.accounts import check_username_availability, delete_orphaned_account, ensure_profile, list_orphaned_accounts
from .services.stats import get_user_stats
from .services.validators import normalize_username, username_problems


@extend_schema_view(
    create=extend_schema(
        tags=["Profiles"],
        summary="프로필 생성",
        description="현재 사용자의 프로필을 생성합니다.",
        operation_id="profiles_create",
        request=ProfileCreateSerializer,
        responses={
            201: OpenApiResponse(response=ProfileReadSerializer, description="생성된 프로필"),
            400: OpenApiResponse(response=ErrorOut),
            401: OpenApiResponse(response=ErrorOut),
        },
        examples=[OpenApiExample("요청 예시", value={"username": "anxy_user", "bio": "hi!"}, request_only=True)],
    ),
    retrieve=extend_schema(
        tags=["Profiles"],
        summary="프로필 단건 조회(username)",
        operation_id="profiles_retrieve",
        parameters=[OpenApiParameter(name="username", location=OpenApiParameter.PATH, type=OpenApiTypes.STR, description="대상 사용자 username")],
        responses={200: OpenApiResponse(response=ProfileReadSerializer), 401: OpenApiResponse(response=ErrorOut), 404: OpenApiResponse(response=ErrorOut)},
    ),
)
class ProfileViewSet(viewsets.GenericViewSet, mixins.CreateModelMixin, mixins.RetrieveModelMixin):
    queryset = Profile.objects.select_related("user")
    serializer_class = ProfileReadSerializer
    permission_classes = [IsAuthenticated]
    lookup_field = "username"
    lookup_value_regex = r"[A-Za-z0-9_]+"

    def get_throttles(self):
        if self.action == "availability":
            self.throttle_scope = "username_check"
            return [WindowRateThrottle()]
        return super().get_throttles()

    def get_queryset(self):
        qs = Profile.objects.select_related("user").annotate(
            follower_count=Count("user__followers", distinct=True),
            following_count=Count("user__following", distinct=True),
        )
        user = getattr(self.request, "user", None)
        if user and user.is_authenticated:
            qs = qs.annotate(
                is_following=Exists(Follow.objects.filter(follower_id=user.id, following_id=OuterRef("user_id"))),
                is_followed_by=Exists(Follow.objects.filter(follower_id=OuterRef("user_id"), following_id=user.id)),
            )
        return qs

    def get_serializer_class(self):
        if self.action == "create":
            return ProfileCreateSerializer
        if self.action == "partial_update_me":
            return ProfileUpdateSerializer
        return ProfileReadSerializer

    def create(self, request, *args, **kwargs):
        s = ProfileCreateSerializer(data=request.data, context={"request": request})
        s.is_valid(raise_exception=True)
        obj = s.save()
        return Response(ProfileReadSerializer(self.get_queryset().get(pk=obj.pk)).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        tags=["Profiles"],
        summary="내 프로필 조회",
        operation_id="profiles_me_get",
        responses={200: OpenApiResponse(response=ProfileReadSerializer), 401: OpenApiResponse(response=ErrorOut), 404: OpenApiResponse(response=ErrorOut)},
    )
    @action(detail=False, methods=["get"], url_path="me", permission_classes=[IsAuthenticated])
    def me(self, request):
        prof = get_object_or_404(self.get_queryset(), user=request.user)
        return Response(ProfileReadSerializer(prof).data)

    @extend_schema(
        tags=["Profiles"],
        summary="내 프로필 수정(부분)",
        operation_id="profiles_me_patch",
        request=ProfileUpdateSerializer,
        responses={200: OpenApiResponse(response=ProfileReadSerializer), 400: OpenApiResponse(response=ErrorOut), 401: OpenApiResponse(response=ErrorOut)},
        examples=[OpenApiExample("요청 예시", value={"bio": "updated!", "is_private": True}, request_only=True)],
    )
    @me.mapping.patch
    def partial_update_me(self, request):
        prof = get_object_or_404(Profile, user=request.user)
        s = ProfileUpdateSerializer(prof, data=request.data, partial=True, context={"request": request})
        s.is_valid(raise_exception=True)
        obj = s.save()
        return Response(ProfileReadSerializer(self.get_queryset().get(pk=obj.pk)).data)

    @extend_schema(
        tags=["Profiles"],
        summary="내 프로필 삭제",
        operation_id="profiles_me_delete",
        responses={204: OpenApiResponse(description="삭제 성공"), 401: OpenApiResponse(response=ErrorOut)},
    )
    @me.mapping.delete
    def delete_me(self, request):
        prof = get_object_or_404(Profile, user=request.user)
        prof.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        tags=["Profiles"],
        summary="username 가용성 점검",
        description=(
            "`username` 후보의 사용 가능 여부를 검사합니다.\n"
            "- 길이/형식 검사, 예약어 여부, 중복 여부를 판단합니다.\n"
            "- `reasons` 예: `Type Error(Length)`, `Type Error(Format)`, `Reserved Word`, `Duplicate Username`"
        ),
        operation_id="profiles_availability",
        parameters=[OpenApiParameter(name="username", location=OpenApiParameter.QUERY, required=False, type=OpenApiTypes.STR, description="검사할 username")],
        responses={200: OpenApiResponse(response=AvailabilityOut, description="가용성 결과"), 401: OpenApiResponse(response=ErrorOut), 429: OpenApiResponse(response=ErrorOut)},
        examples=[OpenApiExample("응답 예시", value={"username": "anxy_user", "available": True, "reasons": []}, response_only=True)],
    )
    @action(detail=False, methods=["get"], url_path="availability", permission_classes=[IsAuthenticated])
    def availability(self, request):
        candidate = normalize_username(request.query_params.get("username") or "")
        reasons = username_problems(candidate)
        if candidate and not check_username_availability(candidate):
            reasons.append("Duplicate Username")
        return Response({"username": candidate, "available": not reasons, "reasons": reasons})

    @extend_schema(
        tags=["Profiles"],
        summary="사용자 통계",
        description="작성 글 수, 팔로워 수, 팔로잉 수. 프라이버시 필터 없이 정확한 값입니다.",
        operation_id="profiles_stats",
        responses={200: OpenApiResponse(response=UserStatsOut), 404: OpenApiResponse(response=ErrorOut)},
    )
    @action(detail=True, methods=["get"], url_path="stats")
    def stats(self, request, username=None):
        prof = get_object_or_404(Profile, username=username)
        return Response(get_user_stats(prof.user_id))


class FixProfileView(APIView):
    """프로필 없이 로그인된 세션을 위한 자가 복구 엔드포인트."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["Maintenance"],
        summary="프로필 자가 복구",
        description="현재 사용자의 프로필이 없으면 인증 메타데이터로 username 을 만들어 생성합니다. 이미 있으면 그대로 반환합니다.",
        operation_id="fix_profile",
        responses={200: OpenApiResponse(response=FixProfileOut), 401: OpenApiResponse(response=ErrorOut)},
    )
    def get(self, request):
        profile, created = ensure_profile(request.user)
        return Response({"status": "created" if created else "exists", "profile": ProfileReadSerializer(profile).data})


class OrphanedAccountsView(APIView):
    permission_classes = [IsAdminUser]

    @extend_schema(
        tags=["Maintenance"],
        summary="프로필 없는 계정 목록",
        operation_id="orphaned_accounts_list",
        responses={200: OpenApiResponse(response=OrphanedAccountsOut), 403: OpenApiResponse(response=ErrorOut)},
    )
    def get(self, request):
        return Response(list_orphaned_accounts())

    @extend_schema(
        tags=["Maintenance"],
        summary="프로필 없는 계정 삭제",
        operation_id="orphaned_accounts_delete",
        parameters=[OpenApiParameter(name="userId", location=OpenApiParameter.QUERY, required=True, type=OpenApiTypes.UUID)],
        responses={
            200: OpenApiResponse(response=SuccessOut),
            400: OpenApiResponse(response=ErrorOut),
            403: OpenApiResponse(response=ErrorOut),
            404: OpenApiResponse(response=ErrorOut),
        },
    )
    def delete(self, request):
        raw = request.query_params.get("userId")
        if not raw:
            raise ValidationError({"detail": "userId is required."})
        try:
            user_id = uuid.UUID(raw)
        except ValueError:
            raise ValidationError({"detail": "userId must be a UUID."})
        raise_for_result(delete_orphaned_account(user_id))
        return Response({"success": True})
