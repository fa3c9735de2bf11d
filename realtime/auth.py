import logging
import urllib.parse
from typing import Optional

from channels.middleware import BaseMiddleware
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken

log = logging.getLogger(__name__)


def _strip_bearer(value: str) -> str:
    v = value.strip()
    return v[7:].strip() if v.lower().startswith("bearer ") else v


class JWTAuthMiddleware(BaseMiddleware):
    # ?token=..., scope["subprotocols"], Sec-WebSocket-Protocol 헤더 순으로 access 토큰을 찾아 scope["user_id"] 를 세팅한다.

    def _extract_token(self, scope) -> Optional[str]:
        qs = scope.get("query_string", b"").decode()
        if qs:
            params = urllib.parse.parse_qs(qs)
            if params.get("token"):
                return params["token"][0]

        for proto in scope.get("subprotocols") or []:
            if proto and proto.strip():
                return _strip_bearer(proto)

        headers = dict(scope.get("headers", []))
        swp = headers.get(b"sec-websocket-protocol")
        if swp:
            return _strip_bearer(swp.decode().split(",")[0])
        return None

    def _user_id(self, token: Optional[str]) -> Optional[str]:
        if not token:
            return None
        try:
            # 서명/만료/토큰 타입까지 simplejwt 가 검증
            payload = AccessToken(token)
        except TokenError as e:
            log.info("websocket token rejected: %s", e)
            return None
        user_id = payload.get(api_settings.USER_ID_CLAIM)
        return str(user_id) if user_id else None

    async def __call__(self, scope, receive, send):
        scope["user_id"] = self._user_id(self._extract_token(scope))
        return await super().__call__(scope, receive, send)
