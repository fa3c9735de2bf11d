from rest_framework.pagination import LimitOffsetPagination
from rest_framework.response import Response


class OffsetLimitPagination(LimitOffsetPagination):
    """?offset=&limit= 페이지. 응답: {count, offset, limit, results}."""

    default_limit = 20
    max_limit = 100

    def get_paginated_response(self, data):
        return Response(self.page_body(data, self.count))

    def page_body(self, results, total: int) -> dict:
        return {"count": total, "offset": self.offset, "limit": self.limit, "results": results}

    def window(self, request):
        # 쿼리셋 없이 (offset, limit) 만 필요한 조회용
        self.request = request
        self.limit = self.get_limit(request)
        self.offset = self.get_offset(request)
        return self.offset, self.limit

    def get_paginated_response_schema(self, schema):
        return {
            "type": "object",
            "required": ["count", "results"],
            "properties": {
                "count": {"type": "integer", "example": 42},
                "offset": {"type": "integer", "example": 0},
                "limit": {"type": "integer", "example": self.default_limit},
                "results": schema,
            },
        }
