"""Standard output event delivery mechanism."""

import json
import sys
from typing import Any

from ..config.event_delivery import StdoutDeliveryConfig
from ..utils.time import format_timestamp, utc_now
from .base import BaseEventDelivery, DeliveryResult, DeliveryStatus


class StdoutEventDelivery(BaseEventDelivery):
    """Standard output event delivery implementation."""

    def __init__(self, name: str, config: StdoutDeliveryConfig):
        super().__init__(name, config)
        self.config: StdoutDeliveryConfig = config

    def deliver(self, events: list[dict[str, Any]]) -> list[DeliveryResult]:
        """Deliver events to stdout."""
        results = []

        for event in events:
            try:
                print(self._format_event(event), file=sys.stdout, flush=True)

                self.logger.debug(
                    "Event printed to stdout",
                    delivery_name=self.name,
                    sequence=event.get("sequence")
                )

                results.append(DeliveryResult(
                    status=DeliveryStatus.SUCCESS,
                    sequence=event.get("sequence"),
                    message="Printed to stdout"
                ))

            except (OSError, TypeError, ValueError) as e:
                self.logger.error(
                    "Failed to print event to stdout",
                    delivery_name=self.name,
                    sequence=event.get("sequence"),
                    error=str(e)
                )
                results.append(DeliveryResult(
                    status=DeliveryStatus.FAILED,
                    sequence=event.get("sequence"),
                    message=f"Stdout error: {str(e)}",
                    error=e
                ))

        return results

    def _format_event(self, event: dict[str, Any]) -> str:
        """Format event for stdout output."""
        if self.config.format == "pretty":
            owner = event.get("new_owner") or event.get("previous_owner")
            return (
                f"[{format_timestamp(utc_now())}] #{event['sequence']} "
                f"{event['event_type']}: plot {event['plot']} ({owner})"
            )

        if self.config.include_timestamp:
            event_copy = event.copy()
            event_copy["stdout_timestamp"] = format_timestamp(utc_now())
            return json.dumps(event_copy)
        return json.dumps(event)

    def health_check(self) -> bool:
        """Check if stdout is available."""
        try:
            return sys.stdout.writable()
        except (OSError, ValueError):
            return False
