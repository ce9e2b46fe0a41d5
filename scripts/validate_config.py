#!/usr/bin/env python3
"""Configuration validation script."""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from transit_app.config.loader import ConfigLoader
from transit_app.config.validation import ConfigValidator, ValidationError


def validate_config_dir(config_dir: Optional[Path]) -> List[ValidationError]:
    """Validate the merged configuration for a config directory."""
    loader = ConfigLoader.create(config_dir)
    config = loader.merge_config()
    return ConfigValidator.validate_config(config)


def main():
    """Main validation function."""
    parser = argparse.ArgumentParser(description="Validate transit pipeline configuration")
    parser.add_argument("config_dir", nargs="?", type=Path, default=None,
                        help="Directory containing pipeline.yaml (default: ./config)")
    args = parser.parse_args()

    print("🔍 Validating transit pipeline configuration...")

    all_valid = True

    try:
        errors = validate_config_dir(args.config_dir)

        if errors:
            print(f"❌ Found {len(errors)} validation errors:")
            for error in errors:
                print(f"  • {error.field}: {error.message} (value: {error.value})")
            all_valid = False
        else:
            print("✅ Configuration is valid")

    except Exception as e:
        print(f"❌ Error loading configuration: {e}")
        all_valid = False

    # Call-site overrides must also pass validation
    print("\n📋 Testing call-site overrides...")
    test_overrides = {
        "range_fetch": {"inter_call_delay_seconds": 0.1},
        "cache": {"backend": "sqlite", "transit_ttl_days": 7},
    }

    try:
        loader = ConfigLoader.create(args.config_dir)
        errors = ConfigValidator.validate_config(loader.merge_config(test_overrides))

        if errors:
            print("❌ Override validation failed:")
            for error in errors:
                print(f"  • {error.field}: {error.message}")
            all_valid = False
        else:
            print("✅ Override validation passed")

    except Exception as e:
        print(f"❌ Error testing overrides: {e}")
        all_valid = False

    if all_valid:
        print("\n🎉 All configuration validation passed!")
        sys.exit(0)
    else:
        print("\n❌ Configuration validation failed!")
        sys.exit(1)


if __name__ == "__main__":
    main()
