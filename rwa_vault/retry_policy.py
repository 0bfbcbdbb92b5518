#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Retry with exponential backoff for transient storage failures."""

from __future__ import annotations

import random
import time
from typing import Any, Callable, Optional, TypeVar

from .config import VaultSettings
from .errors import EntryArchived, StorageError
from .logging_config import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay: float = 0.5,
        max_delay: float = 30.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
    ):
        self.max_attempts = max(1, max_attempts)
        self.initial_delay = max(0.0, initial_delay)
        self.max_delay = max(self.initial_delay, max_delay)
        self.exponential_base = max(1.0, exponential_base)
        self.jitter = jitter

    @classmethod
    def from_settings(cls, settings: VaultSettings) -> "RetryConfig":
        return cls(
            max_attempts=settings.retry_max_attempts,
            initial_delay=settings.retry_initial_delay,
        )

    def get_delay(self, attempt: int) -> float:
        """
        Calculate delay for given attempt number.

        Args:
            attempt: Attempt number (0-indexed)

        Returns:
            Delay in seconds
        """
        delay = min(self.initial_delay * (self.exponential_base ** attempt), self.max_delay)
        if self.jitter and delay > 0:
            # ±25%
            spread = delay * 0.25
            delay = max(0.0, delay + random.uniform(-spread, spread))
        return delay


def should_retry(error: Exception, attempt: int, config: RetryConfig) -> bool:
    if attempt >= config.max_attempts - 1:
        return False
    # Archival is a state condition, not a transient fault
    if isinstance(error, EntryArchived):
        return False
    return isinstance(error, (StorageError, OSError))


def retry_with_backoff(
    func: Callable[..., T],
    *args: Any,
    config: Optional[RetryConfig] = None,
    **kwargs: Any,
) -> T:
    """
    Execute function with retry and exponential backoff.

    Raises:
        The last exception once retries are exhausted or the error is not transient
    """
    config = config or RetryConfig()
    for attempt in range(config.max_attempts):
        try:
            return func(*args, **kwargs)
        except Exception as error:
            if not should_retry(error, attempt, config):
                raise
            delay = config.get_delay(attempt)
            logger.warning(
                "transient failure, retrying",
                extra={"attempt": attempt + 1, "delay": round(delay, 3), "error": str(error)},
            )
            if delay > 0:
                time.sleep(delay)
    raise RuntimeError("Retry logic error: no attempts executed")
