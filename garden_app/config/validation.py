"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any

from .event_delivery import DeliveryMethod

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_registry_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate registry deployment parameters."""
        errors = []

        # Validate total_plots
        if "total_plots" in params:
            value = params["total_plots"]
            if not _is_positive_int(value):
                errors.append(ValidationError(
                    field="total_plots",
                    message="Must be a positive integer",
                    value=value
                ))

        # Validate max_plots_per_person
        if "max_plots_per_person" in params:
            value = params["max_plots_per_person"]
            if not _is_positive_int(value):
                errors.append(ValidationError(
                    field="max_plots_per_person",
                    message="Must be a positive integer",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_event_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate audit trail parameters."""
        errors = []

        for flag in ("store_enabled", "snapshot_on_write"):
            if flag in params and not isinstance(params[flag], bool):
                errors.append(ValidationError(
                    field=flag,
                    message="Must be a boolean",
                    value=params[flag]
                ))

        if "store_path" in params:
            value = params["store_path"]
            if not isinstance(value, str) or not value.strip():
                errors.append(ValidationError(
                    field="store_path",
                    message="Must be a non-empty string",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_logging_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate logging parameters."""
        errors = []

        if "level" in params:
            value = params["level"]
            if not isinstance(value, str) or value.upper() not in VALID_LOG_LEVELS:
                errors.append(ValidationError(
                    field="level",
                    message=f"Must be one of {', '.join(VALID_LOG_LEVELS)}",
                    value=value
                ))

        if "format_json" in params and not isinstance(params["format_json"], bool):
            errors.append(ValidationError(
                field="format_json",
                message="Must be a boolean",
                value=params["format_json"]
            ))

        return errors

    @staticmethod
    def validate_delivery_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate the optional event delivery section."""
        errors = []
        methods = {method.value for method in DeliveryMethod}

        for index, destination in enumerate(params.get("destinations") or []):
            if not isinstance(destination, dict) or not destination.get("name"):
                errors.append(ValidationError(
                    field=f"destinations[{index}].name",
                    message="Each destination needs a name",
                    value=destination
                ))
                continue
            if destination.get("method") not in methods:
                errors.append(ValidationError(
                    field=f"destinations[{index}].method",
                    message=f"Must be one of {', '.join(sorted(methods))}",
                    value=destination.get("method")
                ))
            elif destination["method"] == DeliveryMethod.FILE_OUTPUT.value \
                    and not destination.get("output_path"):
                errors.append(ValidationError(
                    field=f"destinations[{index}].output_path",
                    message="File destinations need an output_path",
                    value=None
                ))

        retries = params.get("failure_retry_attempts", 0)
        if not isinstance(retries, int) or isinstance(retries, bool) or retries < 0:
            errors.append(ValidationError(
                field="failure_retry_attempts",
                message="Must be a non-negative integer",
                value=retries
            ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = []

        manager = config.get("manager")
        if manager is not None and (not isinstance(manager, str) or not manager.strip()):
            errors.append(ValidationError(
                field="manager",
                message="Must be a non-empty identity string",
                value=manager
            ))

        if "registry" in config:
            errors.extend(ConfigValidator.validate_registry_params(config["registry"]))

        if "events" in config:
            errors.extend(ConfigValidator.validate_event_params(config["events"]))

        if "logging" in config:
            errors.extend(ConfigValidator.validate_logging_params(config["logging"]))

        if "delivery" in config:
            errors.extend(ConfigValidator.validate_delivery_params(config["delivery"] or {}))

        return errors
