import logging
import re
import uuid
from typing import Any

UUID_RE = re.compile(r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-([0-9a-fA-F]{8})([0-9a-fA-F]{4})\b")
EMAIL_RE = re.compile(r"\b([A-Za-z0-9._%+-])[A-Za-z0-9._%+-]*@([A-Za-z0-9.-]+\.[A-Za-z]{2,})\b")
SENSITIVE_KEYS = ("password", "token", "secret", "authorization")
REDACTED = "[REDACTED]"
_EXC_FORMATTER = logging.Formatter()


def mask_text(text: str) -> str:
    # UUID -> uuid-<last4>, 이메일 -> a***@domain
    text = UUID_RE.sub(lambda m: f"uuid-{m.group(2)}", text)
    return EMAIL_RE.sub(lambda m: f"{m.group(1)}***@{m.group(2)}", text)


def mask_value(value: Any) -> Any:
    if isinstance(value, str):
        return mask_text(value)
    if isinstance(value, uuid.UUID):
        return mask_text(str(value))
    if isinstance(value, dict):
        return {k: (REDACTED if any(s in str(k).lower() for s in SENSITIVE_KEYS) else mask_value(v)) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(mask_value(v) for v in value)
    return value


class SensitiveDataFilter(logging.Filter):
    """로그 레코드의 메시지/인자에서 식별자와 비밀값을 가린다."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = mask_text(record.msg)
        if isinstance(record.args, dict):
            record.args = mask_value(record.args)
        elif isinstance(record.args, tuple):
            record.args = tuple(mask_value(a) for a in record.args)
        if record.exc_info and not record.exc_text:
            # 포매터는 exc_text 가 있으면 그대로 쓴다. DB 오류 메시지의 식별자도 가린다
            record.exc_text = mask_text(_EXC_FORMATTER.formatException(record.exc_info))
        return True
