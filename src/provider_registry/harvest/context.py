"""
Request context for the harvesting pipeline.

A RequestContext travels with every call made on behalf of one inbound
request. It carries the request deadline, which bounds the timeout of each
outbound call, and the structured fields used for log output.
"""

import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

from provider_registry.exceptions import DeadlineExceededError
from provider_registry.log_utils import ContextLoggerAdapter, get_context_logger


@dataclass(frozen=True)
class RequestContext:
    """Deadline and logging context for one request."""

    deadline: Optional[float] = None
    """Absolute `time.monotonic()` value after which work must stop; None for no deadline"""

    fields: Dict[str, Any] = field(default_factory=dict)
    """Structured context rendered with every log message"""

    @classmethod
    def with_timeout(cls, seconds: Optional[float], **fields: Any) -> "RequestContext":
        """
        Create a context whose deadline is `seconds` from now.

        Parameters:
            seconds (Optional[float]): Time budget for the request; None disables the deadline.
            **fields: Structured logging context.
        """
        deadline = time.monotonic() + seconds if seconds is not None else None
        return cls(deadline=deadline, fields=dict(fields))

    def bind(self, **fields: Any) -> "RequestContext":
        """Return a context with the same deadline and additional logging fields."""
        return replace(self, fields={**self.fields, **fields})

    @property
    def logger(self) -> ContextLoggerAdapter:
        return get_context_logger(**self.fields)

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is no deadline."""
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def check(self) -> None:
        """
        Raise if the deadline has passed.

        Raises:
            DeadlineExceededError: When no time remains.
        """
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise DeadlineExceededError(
                "Request deadline exceeded", details=f"{-remaining:.3f}s over"
            )

    def timeout_for(self, default: float) -> float:
        """
        Compute the timeout for an outbound call.

        Parameters:
            default (float): The call's own bounded timeout.

        Returns:
            float: The smaller of `default` and the time left before the deadline.

        Raises:
            DeadlineExceededError: When no time remains.
        """
        self.check()
        remaining = self.remaining()
        if remaining is None:
            return default
        return min(default, remaining)
