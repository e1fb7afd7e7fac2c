"""Logging helpers for mountserve"""

import logging
import sys
from typing import Iterable, Optional, Set

from pythonjsonlogger.json import JsonFormatter

REDACTED = '********'

DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
JSON_LOG_FORMAT = '%(asctime)s %(name)s %(levelname)s %(message)s'


def get_logger(name: str) -> logging.Logger:
    """Return the module logger for ``name``."""
    return logging.getLogger(name)


def redact(text: str, secrets: Iterable[Optional[str]]) -> str:
    """
    Replace every occurrence of each secret in text.

    Args:
        text: Text that may contain secrets
        secrets: Secret values, empty and None values are ignored

    Returns:
        Text with secrets replaced by a fixed mask
    """
    if not text:
        return text
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


class RedactingFilter(logging.Filter):
    """
    Masks registered secrets in every log record passing through a handler.

    Secrets are registered by the component that owns them (the sshfs driver
    registers its password) so that no formatted message, including
    subprocess diagnostics, can carry the value to a log sink.
    """

    _secrets: Set[str] = set()

    @classmethod
    def register(cls, secret: Optional[str]):
        if secret:
            cls._secrets.add(secret)

    @classmethod
    def unregister(cls, secret: Optional[str]):
        cls._secrets.discard(secret)

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        message = record.getMessage()
        masked = redact(message, self._secrets)
        if masked != message:
            record.msg = masked
            record.args = ()
        return True


def setup_logging(level: str = 'INFO', fmt: str = DEFAULT_LOG_FORMAT,
                  json_format: bool = False) -> logging.Handler:
    """
    Configure the root logger with a single stderr handler.

    Args:
        level: Log level name
        fmt: Format string for plain text output
        json_format: Emit JSON lines instead of plain text

    Returns:
        The installed handler
    """
    handler = logging.StreamHandler(sys.stderr)
    if json_format:
        handler.setFormatter(JsonFormatter(JSON_LOG_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(fmt))
    handler.addFilter(RedactingFilter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    return handler
