import re

from rest_framework.throttling import ScopedRateThrottle

_PERIODS = {"s": 1, "m": 60, "h": 3600, "d": 86400}
_RATE_RE = re.compile(r"^\s*(\d+)\s*/\s*(\d*)\s*([smhd])")


class WindowRateThrottle(ScopedRateThrottle):
    """
    ScopedRateThrottle 확장: "10/15m", "5/1h" 처럼 구간 길이를 함께 적을 수 있다.
    기존 "30/minute" 표기도 그대로 동작한다.
    """

    def parse_rate(self, rate):
        if rate is None:
            return (None, None)
        m = _RATE_RE.match(rate)
        if not m:
            return super().parse_rate(rate)
        num, mult, unit = m.groups()
        return (int(num), int(mult or 1) * _PERIODS[unit])
