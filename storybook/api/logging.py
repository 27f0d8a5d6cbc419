"""Structured logging infrastructure for the API layer.

Provides JSON-formatted logging for production and human-readable
logging for development, plus a GenerationLogger helper for story,
illustration and payment events.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

STRUCTURED_FIELDS = (
    "story_id",
    "user_id",
    "stage",
    "duration",
    "provider",
    "cost",
    "error_type",
    "event",
)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields if present
        for name in STRUCTURED_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def configure_logging(json_format: bool = True, level: int = logging.INFO) -> None:
    """Configure structured logging for the application."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root_logger.addHandler(handler)


class GenerationLogger:
    """Logger for generation and billing events with structured fields."""

    def __init__(self):
        self.logger = logging.getLogger("storybook.generation")

    def generation_started(self, user_id: Optional[str], stage: str) -> None:
        self.logger.info(
            f"Generation started: {stage}",
            extra={"user_id": user_id, "stage": stage},
        )

    def stage_completed(self, story_id: Optional[str], stage: str, duration: float = None) -> None:
        extra = {"story_id": story_id, "stage": stage}
        if duration:
            extra["duration"] = round(duration, 2)
        self.logger.info(f"Stage completed: {stage}", extra=extra)

    def generation_completed(
        self,
        story_id: Optional[str],
        stage: str,
        duration: float,
        cost: float = 0.0,
        provider: Optional[str] = None,
    ) -> None:
        extra = {"story_id": story_id, "stage": stage, "duration": round(duration, 2), "cost": cost}
        if provider:
            extra["provider"] = provider
        self.logger.info(f"Generation completed: {stage}", extra=extra)

    def generation_failed(self, stage: str, error: Exception, user_id: Optional[str] = None) -> None:
        self.logger.error(
            f"Generation failed at {stage}: {error}",
            extra={"user_id": user_id, "stage": stage, "error_type": type(error).__name__},
            exc_info=True,
        )

    def vendor_fallback(self, provider: str, reason: str) -> None:
        self.logger.warning(
            f"Falling back from {provider}: {reason}",
            extra={"provider": provider, "stage": "fallback"},
        )

    def payment_event(self, event: str, user_id: Optional[str] = None, **details) -> None:
        self.logger.info(
            f"Payment event: {event} {details}" if details else f"Payment event: {event}",
            extra={"event": event, "user_id": user_id, "provider": "razorpay"},
        )


# Global generation logger instance
generation_logger = GenerationLogger()
