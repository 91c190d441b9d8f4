#!/usr/bin/env python3
"""Deploy a garden plot registry from configuration and report its parameters."""

import sys
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from garden_app.errors import InvalidConfiguration
from garden_app.config.loader import ConfigLoader
from garden_app.logging.config import configure_logging_from_config
from garden_app.service import GardenService


def main():
    """Deploy with the manager identity given on the command line."""
    if len(sys.argv) < 2:
        print("usage: deploy.py <manager-address> [config-dir]")
        sys.exit(2)

    manager = sys.argv[1]
    config_dir = sys.argv[2] if len(sys.argv) > 2 else None

    try:
        service = GardenService.deploy(manager=manager, config_dir=config_dir)
    except InvalidConfiguration as e:
        print(f"❌ Deployment failed: {e}")
        sys.exit(1)

    config = ConfigLoader.create(Path(config_dir) if config_dir else None).merge_config()
    configure_logging_from_config(config["logging"])

    registry = service.registry
    print("🌱 Garden registry deployed")
    print(f"  manager:              {registry.manager}")
    print(f"  total plots:          {registry.total_plots}")
    print(f"  max plots per person: {registry.max_plots_per_person}")
    if service.event_store is not None:
        print(f"  event store:          {service.event_store.db_path}")


if __name__ == "__main__":
    main()
