"""Logging setup with per-owner context."""
import logging
import sys
from contextvars import ContextVar
from typing import Optional

_owner_context: ContextVar[Optional[str]] = ContextVar("owner_context", default=None)

LOG_FORMAT = "%(asctime)s [%(levelname)s] [owner:%(owner)s] %(name)s: %(message)s"


class OwnerContextFilter(logging.Filter):
    """Add the current owner to log records."""

    def filter(self, record):
        record.owner = _owner_context.get() or "system"
        return True


def set_owner_context(owner_id: Optional[str]):
    """Set the owner for log records emitted in the current context."""
    return _owner_context.set(owner_id)


def reset_owner_context(token) -> None:
    _owner_context.reset(token)


def configure_logging(log_level: str = "INFO") -> None:
    """Install a console handler on the root logger."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Remove handlers installed by a previous call
    for handler in list(root.handlers):
        if getattr(handler, "_finance_advisor", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(OwnerContextFilter())
    handler._finance_advisor = True
    root.addHandler(handler)
