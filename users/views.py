import logging

from drf_spectacular.utils import OpenApiExample, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from common.schema import ErrorOut, LoginOut, SignupOut
from common.throttling import WindowRateThrottle

from .models import User
from .serializers import LoginSerializer, LogoutSerializer, SignupInputSerializer
from .services import issue_tokens, register_account

log = logging.getLogger(__name__)


class AuthViewSet(viewsets.GenericViewSet):
    queryset = User.objects.all()
    permission_classes = [AllowAny]
    throttle_classes = [WindowRateThrottle]

    @property
    def throttle_scope(self):
        return {"signup": "auth_signup", "login": "auth_login"}.get(self.action)

    def get_serializer_class(self):
        return {
            "signup": SignupInputSerializer,
            "login": LoginSerializer,
            "refresh": TokenRefreshSerializer,
            "logout": LogoutSerializer,
        }.get(self.action, SignupInputSerializer)

    @extend_schema(
        tags=["Auth"],
        summary="회원가입(이메일 + 비밀번호)",
        description="사용자와 프로필을 함께 생성하고 JWT 를 발급합니다.",
        operation_id="auth_signup",
        request=SignupInputSerializer,
        responses={201: OpenApiResponse(response=SignupOut), 400: OpenApiResponse(response=ErrorOut), 429: OpenApiResponse(response=ErrorOut)},
        examples=[OpenApiExample("요청 예시", value={"email": "bob@example.com", "password": "s3cret-pass", "username": "bob"}, request_only=True)],
    )
    @action(detail=False, methods=["post"])
    def signup(self, request):
        s = SignupInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        profile = register_account(**s.validated_data)
        data = {**issue_tokens(profile.user), "username": profile.username}
        return Response(data, status=status.HTTP_201_CREATED)

    @extend_schema(
        tags=["Auth"],
        summary="로그인(JWT 발급)",
        description="이메일 또는 username 과 비밀번호로 로그인하여 `access` / `refresh` 토큰을 발급받습니다.",
        operation_id="auth_login",
        request=LoginSerializer,
        responses={200: OpenApiResponse(response=LoginOut), 401: OpenApiResponse(response=ErrorOut), 429: OpenApiResponse(response=ErrorOut)},
        examples=[OpenApiExample("요청 예시", value={"identifier": "bob", "password": "s3cret-pass"}, request_only=True)],
    )
    @action(detail=False, methods=["post"])
    def login(self, request):
        s = LoginSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        return Response(issue_tokens(s.validated_data["user"]), status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Auth"],
        summary="액세스 토큰 재발급",
        operation_id="auth_refresh",
        request=TokenRefreshSerializer,
        responses={200: OpenApiResponse(response=TokenRefreshSerializer), 401: OpenApiResponse(response=ErrorOut)},
    )
    @action(detail=False, methods=["post"])
    def refresh(self, request):
        s = TokenRefreshSerializer(data=request.data)
        try:
            s.is_valid(raise_exception=True)
        except TokenError as e:
            return Response({"detail": str(e)}, status=status.HTTP_401_UNAUTHORIZED)
        return Response(s.validated_data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Auth"],
        summary="로그아웃(토큰 블랙리스트)",
        description=(
            "- `all_logout=true`이면 **현재 인증 사용자**의 모든 토큰을 블랙리스트 처리합니다(헤더에 `Authorization` 필요).\n"
            "- 그렇지 않으면 body의 `refresh` 토큰만 블랙리스트 처리합니다."
        ),
        operation_id="auth_logout",
        request=LogoutSerializer,
        responses={204: OpenApiResponse(description="로그아웃 성공"), 400: OpenApiResponse(response=ErrorOut), 401: OpenApiResponse(response=ErrorOut)},
    )
    @action(detail=False, methods=["post"])
    def logout(self, request):
        s = LogoutSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        if s.validated_data.get("all_logout", False):
            if not request.user or not request.user.is_authenticated:
                return Response(status=status.HTTP_401_UNAUTHORIZED)
            for t in OutstandingToken.objects.filter(user=request.user):
                BlacklistedToken.objects.get_or_create(token=t)
            return Response(status=status.HTTP_204_NO_CONTENT)

        try:
            RefreshToken(s.validated_data["refresh"]).blacklist()
        except TokenError as e:
            # 이미 만료/블랙리스트된 토큰이면 로그아웃은 이미 된 상태
            log.info("logout with unusable refresh token: %s", e)
        return Response(status=status.HTTP_204_NO_CONTENT)
