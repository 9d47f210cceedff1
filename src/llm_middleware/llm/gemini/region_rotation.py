"""
Vertex AI region rotation on quota errors.

A RegionCursor walks the sequence [*regions, fallback] for one call. The
retry engine calls `on_retry` before each retry; the endpoint builder reads
`current_region` on every attempt, so a rotation is visible to the very
next attempt.

Mutation contract:
- `on_retry` advances by one on a quota error, unless already at the end
- non-quota retryable errors (500, 503, timeouts) leave the region unchanged
- `move_to_fallback` jumps to the end (bonus attempt only)
Nothing else writes to the cursor.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

import structlog
from pydantic import ValidationError

from llm_middleware.llm.exceptions import LLMConfigurationError
from llm_middleware.models.llm_models import RegionRotationConfig
from llm_middleware.monitoring.metrics import llm_region_rotations_total
from llm_middleware.retry.classifier import is_quota_error

logger = structlog.get_logger(__name__)


def validate_rotation_config(
    config: Union[RegionRotationConfig, Mapping[str, Any], None],
) -> Optional[RegionRotationConfig]:
    """
    Validate a rotation config at adapter construction.

    Raises:
        LLMConfigurationError: regions empty or fallback missing
    """
    if config is None or isinstance(config, RegionRotationConfig):
        return config
    try:
        return RegionRotationConfig.model_validate(dict(config))
    except ValidationError as e:
        messages = "; ".join(err["msg"].removeprefix("Value error, ") for err in e.errors())
        raise LLMConfigurationError(
            f"Invalid region rotation config: {messages}",
            details={"errors": e.errors(include_url=False)},
        ) from e


@dataclass
class RegionCursor:
    """Per-call position in the region sequence."""

    sequence: list[str]
    index: int = 0

    @classmethod
    def from_config(cls, config: RegionRotationConfig) -> "RegionCursor":
        return cls(sequence=[*config.regions, config.fallback])

    @classmethod
    def fixed(cls, region: str) -> "RegionCursor":
        """Single-region cursor: every attempt goes to `region`."""
        return cls(sequence=[region])

    @property
    def current_region(self) -> str:
        return self.sequence[self.index]

    @property
    def fallback(self) -> str:
        return self.sequence[-1]

    @property
    def at_fallback(self) -> bool:
        return self.index == len(self.sequence) - 1

    def on_retry(self, error: BaseException, attempt: int) -> None:
        """Retry hook: rotate to the next region on quota errors."""
        if not is_quota_error(error) or self.at_fallback:
            return
        previous = self.current_region
        self.index += 1
        llm_region_rotations_total.labels(to_region=self.current_region).inc()
        logger.info(
            "Quota error, rotating Vertex AI region",
            attempt=attempt,
            from_region=previous,
            to_region=self.current_region,
            region_index=self.index,
            total_regions=len(self.sequence),
        )

    def move_to_fallback(self) -> None:
        if self.at_fallback:
            return
        self.index = len(self.sequence) - 1
        llm_region_rotations_total.labels(to_region=self.current_region).inc()
