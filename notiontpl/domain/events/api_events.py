"""Domain Events related to API calls and resilience.

Emitted by the retry service when calls start, succeed, are retried or fail.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass
class ApiCallInitiated(DomainEvent):
    """Event triggered when an API call is about to be made."""
    endpoint: str
    attempt_number: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when an API call succeeds."""
    endpoint: str
    latency_ms: float
    attempt_number: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when an API call fails definitively (fatal or retries exhausted)."""
    endpoint: str
    error_type: str
    error_message: str
    status: Optional[int] = None
    attempts: int = 1
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed API call."""
    endpoint: str
    attempt_number: int
    delay_seconds: float
    status: Optional[int] = None
    timestamp: float = field(default_factory=time.time)
