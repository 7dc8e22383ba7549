"""
Exponential backoff schedule.

Used by the execution harness (retry delays and per-attempt gRPC deadlines)
and the mirror REST client. Delays are deterministic: base * factor^(attempt-1), capped.
"""

import logging

logger = logging.getLogger(__name__)


class ExponentialBackoff:
    """
    Exponential backoff policy.

    Delay increases exponentially with each attempt: base_delay * (factor ^ (attempt - 1))
    """

    def __init__(self, base_delay: float = 0.25, max_delay: float = 8.0, factor: float = 2.0):
        """
        Initialize exponential backoff policy.

        Args:
            base_delay: Delay before the first retry, in seconds
            max_delay: Maximum delay cap
            factor: Exponential factor
        """
        if base_delay < 0 or max_delay < 0:
            raise ValueError("Backoff delays must be non-negative")
        if factor < 1:
            raise ValueError("Backoff factor must be at least 1")
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.factor = factor

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay for given attempt number.

        Args:
            attempt: Attempt number (1-based)

        Returns:
            Delay in seconds
        """
        if attempt < 1:
            return 0.0
        # Cap the exponent; anything past this is above any sane ceiling anyway.
        delay = self.base_delay * (self.factor ** min(attempt - 1, 32))
        return min(delay, self.max_delay)

    def __repr__(self) -> str:
        return f"ExponentialBackoff(base_delay={self.base_delay}, max_delay={self.max_delay}, factor={self.factor})"


__all__ = ["ExponentialBackoff"]
