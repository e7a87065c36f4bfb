"""
Logging configuration that keeps credentials out of the output.
"""

import logging
import logging.config
from typing import Dict, Any, Iterable

REDACTED = "***"
# Shorter secrets would mask unrelated text
MIN_SECRET_LENGTH = 4


class SecretRedactionFilter(logging.Filter):
    """Filter that masks known secrets in log records."""

    def __init__(self, secrets: Iterable[str] = ()):
        super().__init__()
        self.secrets = [s for s in secrets if s and len(s) >= MIN_SECRET_LENGTH]

    def filter(self, record: logging.LogRecord) -> bool:
        """Rewrite the record message with every secret replaced."""
        if not self.secrets:
            return True
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Left for Handler.handleError to report at emit time
            return True
        for secret in self.secrets:
            message = message.replace(secret, REDACTED)
        record.msg = message
        record.args = None
        return True  # Never drop a record


def get_logging_config(level: str = "INFO", secrets: Iterable[str] = ()) -> Dict[str, Any]:
    """Get logging configuration with secret redaction on the root handler."""
    level = level.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "secret_redaction": {
                "()": SecretRedactionFilter,
                "secrets": list(secrets),
            }
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
                "filters": ["secret_redaction"]
            }
        },
        "loggers": {
            "urllib3": {
                "level": "WARNING"
            }
        },
        "root": {
            "level": level,
            "handlers": ["default"]
        }
    }


def configure_logging(level: str = "INFO", secrets: Iterable[str] = ()) -> None:
    logging.config.dictConfig(get_logging_config(level, secrets))
