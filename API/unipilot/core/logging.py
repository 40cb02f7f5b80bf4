import logging
import re
import sys
from contextvars import ContextVar

# Log domains: grade ledger and finalizer, academic record, advisory notes, planning.
DOMAIN_GRADES = "grades"
DOMAIN_RECORD = "record"
DOMAIN_ADVISORY = "advisory"
DOMAIN_PLANNING = "planning"

LOG_FORMAT = "%(asctime)s | %(levelname)s | [%(domain)s] | %(request_id)s | %(name)s | %(message)s"

# Set per request by the request-id middleware; "-" outside a request.
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


def get_domain_logger(name: str, domain: str) -> logging.LoggerAdapter[logging.Logger]:
    """Logger that tags every record with ``domain`` so lines can be filtered per component."""
    return logging.LoggerAdapter(logging.getLogger(name), {"domain": domain})


class ContextFilter(logging.Filter):
    """Fill ``domain`` and ``request_id`` so the format string never fails on third-party records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "domain"):
            record.domain = "app"  # type: ignore[attr-defined]
        record.request_id = request_id_var.get()  # type: ignore[attr-defined]
        return True


_SECRET_PATTERNS = [
    re.compile(r"(?i)(x-api-key\s*[=:]\s*)([^\s,;]+)"),
    re.compile(r"(?i)(authorization\s*[=:]\s*bearer\s+)([^\s,;]+)"),
    re.compile(r"(?i)(jwt[_-]?secret\s*[=:]\s*)([^\s,;]+)"),
    re.compile(r"(?i)(token\s*[=:]\s*)([^\s,;]+)"),
    re.compile(r"(?i)(password\s*[=:]\s*)([^\s,;]+)"),
]


def redact_secrets(message: str) -> str:
    text = str(message or "")
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(r"\1[REDACTED]", text)
    return text


class SecretRedactionFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = redact_secrets(record.getMessage())
        record.args = ()
        return True


class SuppressHealthCheckFilter(logging.Filter):
    """Drop successful GET /health lines from the uvicorn access log."""

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        return not ("/health" in msg and " 200" in msg)


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ContextFilter())
    handler.addFilter(SecretRedactionFilter())
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[handler],
    )
    # SQL echo is controlled by DATABASE_ECHO, not the root level.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").addFilter(SuppressHealthCheckFilter())
