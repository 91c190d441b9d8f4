#!/usr/bin/env python3
"""Configuration validation script."""

import sys
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from garden_app.config.loader import ConfigLoader
from garden_app.config.validation import ConfigValidator


def main():
    """Main validation function."""
    config_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else None

    print("🔍 Validating garden registry configuration...")

    loader = ConfigLoader.create(config_dir)
    config = loader.merge_config()
    errors = ConfigValidator.validate_config(config)

    registry = config.get("registry", {})
    print(f"\n📊 total_plots={registry.get('total_plots')} "
          f"max_plots_per_person={registry.get('max_plots_per_person')}")

    if errors:
        print(f"❌ Found {len(errors)} validation errors:")
        for error in errors:
            print(f"  • {error.field}: {error.message} (value: {error.value})")
        sys.exit(1)

    print("✅ Configuration is valid")
    sys.exit(0)


if __name__ == "__main__":
    main()
