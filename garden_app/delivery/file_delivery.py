"""Append plot events to a local file for indexers that tail the audit trail."""

import fcntl
import json
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, TextIO

from ..config.event_delivery import FileDeliveryConfig
from ..utils.time import utc_now
from .base import (
    BaseEventDelivery,
    DeliveryResult,
    DeliveryStatus,
    EventDeliveryPermanentError,
)

SUPPORTED_FORMATS = ("json", "jsonl")


class FileEventDelivery(BaseEventDelivery):
    """
    Writes events as JSON lines (default) or as a single JSON array.

    When max_file_size_mb is set, a full file is either rotated aside
    (rotation_enabled) or the batch is refused.
    """

    def __init__(self, name: str, config: FileDeliveryConfig):
        super().__init__(name, config)
        self.config: FileDeliveryConfig = config
        self.output_path = Path(config.output_path)

        if config.format not in SUPPORTED_FORMATS:
            raise EventDeliveryPermanentError(f"Unsupported format: {config.format}")

        if config.create_dirs:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)

    def deliver(self, events: list[dict[str, Any]]) -> list[DeliveryResult]:
        if self._is_full():
            if not self.config.rotation_enabled:
                message = f"File size limit exceeded: {self.config.max_file_size_mb}MB"
                self.logger.error(message, delivery_name=self.name)
                return self._results(events, DeliveryStatus.FAILED, message)
            self._rotate()

        try:
            if self.config.format == "jsonl":
                self._append_lines(events)
            else:
                self._rewrite_array(events)
        except OSError as e:
            self.logger.warning(
                "Event file write failed",
                delivery_name=self.name,
                output_path=str(self.output_path),
                error=str(e)
            )
            return self._results(events, DeliveryStatus.FAILED, f"File system error: {e}", e)
        except (TypeError, ValueError) as e:
            self.logger.error("Event not serializable", delivery_name=self.name, error=str(e))
            return self._results(events, DeliveryStatus.FAILED, f"JSON encoding error: {e}", e)

        self.logger.debug(
            "Events written to file",
            delivery_name=self.name,
            sequences=[event.get("sequence") for event in events],
            output_path=str(self.output_path)
        )
        return self._results(events, DeliveryStatus.SUCCESS, f"Written to {self.output_path}")

    def _results(self, events, status, message, error=None) -> list[DeliveryResult]:
        return [
            DeliveryResult(status=status, sequence=event.get("sequence"),
                           message=message, error=error)
            for event in events
        ]

    @contextmanager
    def _locked(self, mode: str) -> Iterator[TextIO]:
        with open(self.output_path, mode) as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                yield f
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

    def _append_lines(self, events: list[dict[str, Any]]) -> None:
        lines = "".join(json.dumps(event, default=str) + "\n" for event in events)
        with self._locked("a" if self.config.append_mode else "w") as f:
            f.write(lines)

    def _rewrite_array(self, events: list[dict[str, Any]]) -> None:
        existing: list[Any] = []
        if self.config.append_mode and self.output_path.exists():
            try:
                loaded = json.loads(self.output_path.read_text() or "[]")
            except json.JSONDecodeError:
                self.logger.warning("Discarding unreadable event array",
                                    delivery_name=self.name,
                                    output_path=str(self.output_path))
                loaded = []
            existing = loaded if isinstance(loaded, list) else []

        with self._locked("w") as f:
            json.dump(existing + events, f, indent=2, default=str)

    def _is_full(self) -> bool:
        if not self.config.max_file_size_mb or not self.output_path.exists():
            return False
        return self.output_path.stat().st_size > self.config.max_file_size_mb * 1024 * 1024

    def _rotate(self) -> None:
        if not self.output_path.exists():
            return

        stamp = utc_now().strftime("%Y%m%d_%H%M%S_%f")
        rotated = self.output_path.with_name(
            f"{self.output_path.stem}_{stamp}{self.output_path.suffix}"
        )
        self.output_path.rename(rotated)
        self.logger.info(
            "Event file rotated",
            delivery_name=self.name,
            rotated_path=str(rotated)
        )

    def health_check(self) -> bool:
        probe = self.output_path.parent / f".{self.output_path.name}.probe"
        try:
            probe.write_text("ok")
            probe.unlink()
        except OSError as e:
            self.logger.warning("Health check failed", delivery_name=self.name, error=str(e))
            return False
        return True
