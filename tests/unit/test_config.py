"""Unit tests for configuration management."""

import pytest
from pathlib import Path

from garden_app.config.defaults import get_default_config
from garden_app.config.event_delivery import (
    DeliveryDestination,
    DeliveryMethod,
    EventDeliveryConfig,
    create_file_destination,
    create_stdout_destination,
    get_default_delivery_config,
)
from garden_app.config.loader import ConfigLoader
from garden_app.config.validation import ConfigValidator


class TestDefaultConfig:
    """Test suite for default configuration."""

    def test_default_config_creation(self) -> None:
        """Test that defaults match the standard deployment (100 plots, 5 per person)."""
        config = get_default_config()
        assert config.registry.total_plots == 100
        assert config.registry.max_plots_per_person == 5
        assert config.events.store_enabled is False
        assert config.logging.level == "INFO"
        assert config.manager is None


class TestConfigLoader:
    """Test suite for configuration loader."""

    def test_config_loader_creation(self) -> None:
        """Test that ConfigLoader can be created."""
        loader = ConfigLoader.create()
        assert loader is not None
        assert isinstance(loader.config_dir, Path)

    def test_merge_config_defaults_only(self, config_dir) -> None:
        """Test config merging with defaults only."""
        loader = ConfigLoader.create(config_dir)
        config = loader.merge_config()

        assert config["registry"]["total_plots"] == 100
        assert config["registry"]["max_plots_per_person"] == 5
        assert config["events"]["store_path"] == "garden_events.db"

    def test_merge_config_with_file(self, config_dir) -> None:
        """Test that garden.yaml overrides defaults."""
        (config_dir / "garden.yaml").write_text(
            "registry:\n  total_plots: 10\nmanager: '0xaa'\n"
        )
        loader = ConfigLoader.create(config_dir)

        config = loader.merge_config()

        assert config["registry"]["total_plots"] == 10
        assert config["registry"]["max_plots_per_person"] == 5
        assert config["manager"] == "0xaa"

    def test_merge_config_with_overrides(self, config_dir) -> None:
        """Test that call-site overrides win over the file."""
        (config_dir / "garden.yaml").write_text("registry:\n  total_plots: 10\n")
        loader = ConfigLoader.create(config_dir)

        config = loader.merge_config({"registry": {"total_plots": 20, "max_plots_per_person": 2}})

        assert config["registry"]["total_plots"] == 20
        assert config["registry"]["max_plots_per_person"] == 2
        # Other defaults should remain
        assert config["events"]["store_enabled"] is False

    def test_empty_config_file(self, config_dir) -> None:
        """Test that an empty garden.yaml is treated as no overrides."""
        (config_dir / "garden.yaml").write_text("")
        loader = ConfigLoader.create(config_dir)

        assert loader.load_file_config() == {}

    def test_repository_config_is_valid(self) -> None:
        """Test that the shipped config/garden.yaml passes validation."""
        loader = ConfigLoader.create()

        assert ConfigValidator.validate_config(loader.merge_config()) == []


class TestConfigValidator:
    """Test suite for configuration validation."""

    def test_valid_registry_params(self) -> None:
        """Test validation of valid registry parameters."""
        errors = ConfigValidator.validate_registry_params(
            {"total_plots": 10, "max_plots_per_person": 2}
        )
        assert len(errors) == 0

    @pytest.mark.parametrize("value", [0, -5, 2.5, "10", True, None])
    def test_invalid_total_plots(self, value) -> None:
        """Test validation of invalid total_plots."""
        errors = ConfigValidator.validate_registry_params({"total_plots": value})

        assert len(errors) == 1
        assert errors[0].field == "total_plots"
        assert "Must be a positive integer" in errors[0].message

    def test_invalid_max_plots_per_person(self) -> None:
        """Test validation of invalid max_plots_per_person."""
        errors = ConfigValidator.validate_registry_params({"max_plots_per_person": 0})

        assert len(errors) == 1
        assert errors[0].field == "max_plots_per_person"

    def test_invalid_event_params(self) -> None:
        """Test validation of audit trail parameters."""
        errors = ConfigValidator.validate_event_params(
            {"store_enabled": "yes", "store_path": "  "}
        )

        assert {error.field for error in errors} == {"store_enabled", "store_path"}

    def test_invalid_log_level(self) -> None:
        errors = ConfigValidator.validate_logging_params({"level": "LOUD"})

        assert len(errors) == 1
        assert errors[0].field == "level"

    def test_validate_config_collects_all_sections(self) -> None:
        """Test that errors from every section are reported together."""
        config = {
            "manager": "",
            "registry": {"total_plots": 0},
            "events": {"snapshot_on_write": 1},
            "logging": {"format_json": "no"},
        }

        errors = ConfigValidator.validate_config(config)

        assert [error.field for error in errors] == [
            "manager", "total_plots", "snapshot_on_write", "format_json"
        ]


class TestEventDeliveryConfig:
    """Test suite for event delivery configuration helpers."""

    def test_default_has_no_destinations(self) -> None:
        config = get_default_delivery_config()

        assert config.enabled is True
        assert config.destinations == []

    def test_create_file_destination(self) -> None:
        destination = create_file_destination("indexer", "/tmp/events.jsonl")

        assert destination.method == DeliveryMethod.FILE_OUTPUT
        assert destination.config.format == "jsonl"
        assert destination.config.output_path == "/tmp/events.jsonl"

    def test_destination_filters(self) -> None:
        """Test event type and plot filters on a destination."""
        destination = create_stdout_destination()
        filtered = DeliveryDestination(
            name="resets",
            method=DeliveryMethod.STDOUT,
            config=destination.config,
            event_types_filter=["PlotReset"],
            plots_filter=[1, 2],
        )

        assert destination.accepts({"event_type": "PlotClaimed", "plot": 7})
        assert filtered.accepts({"event_type": "PlotReset", "plot": 1})
        assert not filtered.accepts({"event_type": "PlotClaimed", "plot": 1})
        assert not filtered.accepts({"event_type": "PlotReset", "plot": 3})

    def test_destination_from_dict(self) -> None:
        """Test building a destination from a garden.yaml entry."""
        destination = DeliveryDestination.from_dict({
            "name": "indexer",
            "method": "file_output",
            "output_path": "events.jsonl",
            "rotation_enabled": True,
            "event_types": ["PlotClaimed"],
        })

        assert destination.method == DeliveryMethod.FILE_OUTPUT
        assert destination.config.rotation_enabled is True
        assert destination.event_types_filter == ["PlotClaimed"]
        assert destination.plots_filter is None

    def test_delivery_config_from_empty_section(self) -> None:
        assert EventDeliveryConfig.from_dict(None) == EventDeliveryConfig()

    def test_delivery_config_from_dict(self) -> None:
        config = EventDeliveryConfig.from_dict({
            "failure_retry_attempts": 0,
            "destinations": [{"name": "console", "method": "stdout", "format": "pretty"}],
        })

        assert config.failure_retry_attempts == 0
        assert config.destinations[0].config.format == "pretty"


class TestDeliveryValidation:
    """Test suite for the delivery section validation."""

    def test_valid_section(self) -> None:
        errors = ConfigValidator.validate_delivery_params({
            "destinations": [{"name": "indexer", "method": "file_output", "output_path": "x"}],
        })

        assert errors == []

    def test_unknown_method(self) -> None:
        errors = ConfigValidator.validate_delivery_params({
            "destinations": [{"name": "hook", "method": "http_post"}],
        })

        assert [error.field for error in errors] == ["destinations[0].method"]

    def test_file_destination_needs_path(self) -> None:
        errors = ConfigValidator.validate_delivery_params({
            "destinations": [{"name": "indexer", "method": "file_output"}],
        })

        assert [error.field for error in errors] == ["destinations[0].output_path"]

    def test_negative_retries(self) -> None:
        errors = ConfigValidator.validate_delivery_params({"failure_retry_attempts": -1})

        assert [error.field for error in errors] == ["failure_retry_attempts"]
