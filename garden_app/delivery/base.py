"""Base classes for handing plot events to external observers."""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import structlog


class DeliveryStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"
    DEAD_LETTER = "dead_letter"


@dataclass
class DeliveryResult:
    """Outcome of handing one event to a destination."""
    status: DeliveryStatus
    sequence: Optional[int] = None
    message: Optional[str] = None
    attempt_count: int = 1
    delivery_time_ms: Optional[int] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.status == DeliveryStatus.SUCCESS


class EventDeliveryError(Exception):
    """Base exception for event delivery errors."""


class EventDeliveryRetryableError(EventDeliveryError):
    """Destination is temporarily unavailable; the same event may be retried."""


class EventDeliveryPermanentError(EventDeliveryError):
    """Destination can never accept the event; retrying is pointless."""


class BaseEventDelivery(ABC):
    """
    Common retry and bookkeeping for event destinations.

    Subclasses implement deliver() for a batch of serialized events and
    health_check(). Events that exhaust their retries are parked in
    dead_letters, keyed by sequence number, until redeliver_dead_letters()
    succeeds for them.
    """

    def __init__(self, name: str, config: Any):
        self.name = name
        self.config = config
        self.logger = structlog.get_logger(f"garden.delivery.{name}")
        self.dead_letters: dict[int, dict[str, Any]] = {}
        self._delivered = 0
        self._failed = 0
        self._last_sequence: Optional[int] = None

    @abstractmethod
    def deliver(self, events: list[dict[str, Any]]) -> list[DeliveryResult]:
        """Write serialized events, returning one result per event in order."""

    @abstractmethod
    def health_check(self) -> bool:
        """Check whether the destination can currently accept events."""

    def deliver_with_retry(
        self,
        events: list[dict[str, Any]],
        max_retries: int = 3,
        retry_delay: float = 1
    ) -> list[DeliveryResult]:
        """
        Deliver events one by one, retrying retryable failures.

        Args:
            events: Serialized events in sequence order
            max_retries: Extra attempts after the first one
            retry_delay: Seconds to wait between attempts

        Returns:
            One result per event. Permanent errors fail immediately; events
            still failing after max_retries come back as DEAD_LETTER.
        """
        return [self._deliver_one(event, max_retries, retry_delay) for event in events]

    def redeliver_dead_letters(self, max_retries: int = 0, retry_delay: float = 0) -> int:
        """
        Retry parked events in sequence order.

        Returns:
            Number of events that were delivered this time
        """
        delivered = 0
        for sequence in sorted(self.dead_letters):
            event = self.dead_letters.pop(sequence)
            if self._deliver_one(event, max_retries, retry_delay).ok:
                delivered += 1
        return delivered

    def _deliver_one(
        self,
        event: dict[str, Any],
        max_retries: int,
        retry_delay: float
    ) -> DeliveryResult:
        sequence = event.get("sequence")
        last_error: Optional[Exception] = None

        for attempt in range(1, max_retries + 2):
            started = time.monotonic()
            try:
                results = self.deliver([event])
            except EventDeliveryPermanentError as e:
                self._failed += 1
                self.logger.error(
                    "Event rejected by destination",
                    delivery_name=self.name,
                    sequence=sequence,
                    error=str(e)
                )
                return DeliveryResult(
                    status=DeliveryStatus.FAILED,
                    sequence=sequence,
                    message=f"Permanent error: {e}",
                    attempt_count=attempt,
                    error=e
                )
            except EventDeliveryRetryableError as e:
                last_error = e
            else:
                result = results[0] if results else None
                if result is not None and result.ok:
                    result.sequence = sequence
                    result.attempt_count = attempt
                    result.delivery_time_ms = int((time.monotonic() - started) * 1000)
                    self._delivered += 1
                    self._last_sequence = sequence
                    return result
                last_error = result.error if result is not None else None

            if attempt <= max_retries:
                self.logger.warning(
                    "Delivery attempt failed, retrying",
                    delivery_name=self.name,
                    sequence=sequence,
                    attempt=attempt,
                    retry_delay=retry_delay,
                    error=str(last_error)
                )
                time.sleep(retry_delay)

        self._failed += 1
        if sequence is not None:
            self.dead_letters[sequence] = event
        self.logger.error(
            "Event moved to dead letter",
            delivery_name=self.name,
            sequence=sequence,
            attempts=max_retries + 1,
            error=str(last_error)
        )
        return DeliveryResult(
            status=DeliveryStatus.DEAD_LETTER,
            sequence=sequence,
            message=f"Max retries exceeded: {last_error}",
            attempt_count=max_retries + 1,
            error=last_error
        )

    def get_stats(self) -> dict[str, Any]:
        attempted = self._delivered + self._failed
        return {
            "name": self.name,
            "delivery_count": self._delivered,
            "error_count": self._failed,
            "dead_letter_count": len(self.dead_letters),
            "last_delivered_sequence": self._last_sequence,
            "success_rate": self._delivered / attempted if attempted else 0.0,
        }

    def reset_stats(self) -> None:
        self._delivered = 0
        self._failed = 0
        self._last_sequence = None
