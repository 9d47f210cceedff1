"""
Debug snapshots of LLM requests and responses.

Adapters build one LLMDebugInfo per call and hand it to a DebugSink at
three points: before the request, after a successful response, after a
failure. Persisting snapshots is up to the sink; the default sink only
emits structlog debug events.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class LLMDebugInfo:
    """Full request/response snapshot of one call, keyed by session_id."""

    provider: str
    model: str
    session_id: str
    base_url: str
    system_message: str
    user_message: str  # Log-safe rendering (images replaced by placeholders)
    request_data: dict
    use_case: Optional[str] = None
    temperature: Optional[float] = None
    reasoning_effort: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    response: Optional[str] = None
    thinking: Optional[str] = None
    raw_response_data: Any = None
    response_timestamp: Optional[datetime] = None
    error: Optional[dict] = None

    def mark_response(self, content: str, raw: Any, thinking: Optional[str] = None) -> None:
        self.response = content
        self.thinking = thinking
        self.raw_response_data = raw
        self.response_timestamp = datetime.now(timezone.utc)

    def mark_error(self, message: str, details: Any = None) -> None:
        self.error = {"message": message, "details": details}
        self.response_timestamp = datetime.now(timezone.utc)


class DebugSink(Protocol):
    """Receives debug snapshots; must not raise."""

    def log_request(self, info: LLMDebugInfo) -> None:
        ...

    def log_response(self, info: LLMDebugInfo) -> None:
        ...

    def log_error(self, info: LLMDebugInfo) -> None:
        ...


class StructlogDebugSink:
    """Emits snapshots as structlog debug events (visible with LOG_LEVEL=DEBUG)."""

    def log_request(self, info: LLMDebugInfo) -> None:
        logger.debug(
            "LLM request",
            session_id=info.session_id,
            provider=info.provider,
            model=info.model,
            base_url=info.base_url,
            use_case=info.use_case,
            temperature=info.temperature,
            reasoning_effort=info.reasoning_effort,
            system_message=info.system_message,
            user_message=info.user_message,
        )

    def log_response(self, info: LLMDebugInfo) -> None:
        logger.debug(
            "LLM response",
            session_id=info.session_id,
            provider=info.provider,
            model=info.model,
            use_case=info.use_case,
            response=info.response,
            thinking=info.thinking,
        )

    def log_error(self, info: LLMDebugInfo) -> None:
        logger.debug(
            "LLM error",
            session_id=info.session_id,
            provider=info.provider,
            model=info.model,
            use_case=info.use_case,
            error=info.error,
        )


class NullDebugSink:
    """Discards all snapshots."""

    def log_request(self, info: LLMDebugInfo) -> None:
        pass

    def log_response(self, info: LLMDebugInfo) -> None:
        pass

    def log_error(self, info: LLMDebugInfo) -> None:
        pass
