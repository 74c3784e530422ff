"""
BountyExpo - Logging

Development logs are single readable lines; production logs are one JSON
object per line. Every record carries the request, user and bounty it was
emitted for, taken from context variables the middleware and auth
dependencies fill in.
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from bountyexpo.core.config import settings


request_id_var: ContextVar[str] = ContextVar('request_id', default='')
user_id_var: ContextVar[str] = ContextVar('user_id', default='')
bounty_id_var: ContextVar[str] = ContextVar('bounty_id', default='')

_CONTEXT = {
    "request_id": request_id_var,
    "user_id": user_id_var,
    "bounty_id": bounty_id_var,
}


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def set_user_id(user_id: str) -> None:
    user_id_var.set(str(user_id) if user_id else '')


def set_bounty_id(bounty_id: str) -> None:
    bounty_id_var.set(str(bounty_id) if bounty_id else '')


def clear_context() -> None:
    for var in _CONTEXT.values():
        var.set('')


def current_context() -> Dict[str, str]:
    """Non-empty context values for the running request"""
    return {name: var.get() for name, var in _CONTEXT.items() if var.get()}


def generate_request_id() -> str:
    return uuid.uuid4().hex[:12]


# LogRecord attributes that are not user-supplied `extra` fields
_RECORD_FIELDS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """One JSON document per record, for log shipping in production"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "service": settings.APP_NAME,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(current_context())
        entry.update(
            (key, value) for key, value in vars(record).items()
            if key not in _RECORD_FIELDS and not key.startswith('_')
        )
        if record.exc_info and record.exc_info[0]:
            entry["exc_type"] = record.exc_info[0].__name__
            entry["exc"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Readable single-line format with the request context inlined"""

    FORMAT = "%(asctime)s %(levelname)-7s [%(request_id)s u=%(user_id)s b=%(bounty_id)s] %(message)s"

    def __init__(self):
        super().__init__(self.FORMAT, datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        for name, var in _CONTEXT.items():
            setattr(record, name, var.get() or '-')
        return super().format(record)


class BountyExpoLogger(logging.Logger):
    """Logger with helpers for the events worth querying later"""

    def log_request(self, method: str, path: str, status_code: int, duration_ms: float) -> None:
        """Access log line; 4xx as warnings, 5xx as errors"""
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        self.log(
            level,
            f"{method} {path} -> {status_code} in {duration_ms:.1f}ms",
            extra={
                "event_type": "http_request",
                "http_method": method,
                "http_path": path,
                "http_status": status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )

    def log_auth_event(self, event: str, success: bool, user_email: Optional[str] = None,
                       reason: Optional[str] = None, client_ip: Optional[str] = None) -> None:
        message = f"Auth {event} {'ok' if success else 'failed'}"
        if user_email:
            message += f" for {user_email}"
        if reason:
            message += f": {reason}"
        self.log(
            logging.INFO if success else logging.WARNING,
            message,
            extra={
                "event_type": "auth",
                "auth_event": event,
                "auth_success": success,
                "client_ip": client_ip,
            },
        )

    def log_wallet_event(self, event: str, user_id: str, amount: int,
                         balance_after: Optional[int] = None, **kwargs) -> None:
        """Ledger movement; amounts in cents, signed from the wallet's point of view"""
        self.info(
            f"Wallet {event}: user={user_id} amount={amount} balance={balance_after}",
            extra={
                "event_type": "wallet",
                "wallet_event": event,
                "wallet_user_id": user_id,
                "amount_cents": amount,
                "balance_after": balance_after,
                **kwargs
            },
        )

    def log_unhandled(self, error: Exception, path: str) -> None:
        self.error(
            f"Unhandled {type(error).__name__} on {path}: {error}",
            exc_info=error,
            extra={"event_type": "unhandled_error", "http_path": path},
        )


def setup_logging() -> BountyExpoLogger:
    """Configure the "bountyexpo" logger for the current environment"""
    logging.setLoggerClass(BountyExpoLogger)
    log = logging.getLogger("bountyexpo")
    log.__class__ = BountyExpoLogger
    log.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    log.propagate = False
    log.handlers.clear()

    formatter: logging.Formatter
    if settings.ENVIRONMENT == "production":
        formatter = JSONFormatter()
    else:
        formatter = ConsoleFormatter()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    log.addHandler(console)

    if settings.LOG_FILE:
        path = Path(settings.LOG_FILE)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(path, maxBytes=5 * 1024 * 1024, backupCount=5)
        file_handler.setFormatter(JSONFormatter())
        log.addHandler(file_handler)

    for noisy in ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return log


logger: BountyExpoLogger = setup_logging()
