#!/usr/bin/env python3
"""
Settings Loader Module

This module loads and merges billing settings from different hierarchical levels:
1. Built-in defaults
2. Portfolio settings (global overrides)
3. Property settings (override portfolio values)

Calculations receive the merged dictionary as an argument and fall back to
the built-in defaults when none is given; only the command-line entry point
reads settings files.
"""

import os
import json
import logging
from copy import deepcopy
from typing import Dict, Any, Optional

from billing.utils.helpers import load_json, to_decimal

# Configure logging
logger = logging.getLogger(__name__)

# Constants
PORTFOLIO_SETTINGS_PATH = os.environ.get(
    'BILLING_SETTINGS_PATH',
    os.path.join('Data', 'Settings', 'portfolio_settings.json')
)
PROPERTY_SETTINGS_BASE_PATH = os.path.join('Data', 'Settings', 'Properties')

DEFAULT_SETTINGS: Dict[str, Any] = {
    "name": "Default Portfolio",
    "settings": {
        "default_due_day": 1,
        "max_due_day": 28,
        "critical_balance_threshold": 100000,
        "carry_forward": {
            "period_estimate": "payment_pairs",
            "payments_per_period": 2
        },
        "short_stay": {
            "ignored_booking_statuses": ["cancelled", "no_show"]
        },
        "currency": "KES"
    }
}


def deep_merge(dict1: Dict[str, Any], dict2: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries, with dict2 values overriding dict1 values when both exist.

    Args:
        dict1: Base dictionary
        dict2: Dictionary to merge on top of dict1

    Returns:
        New dictionary with merged values
    """
    result = deepcopy(dict1)

    for key, value in dict2.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            # Recursively merge nested dictionaries
            result[key] = deep_merge(result[key], value)
        else:
            # Only override if the value is not empty/None
            if value is not None and value != "":
                result[key] = deepcopy(value)

    return result


def get_default_settings() -> Dict[str, Any]:
    """Return a private copy of the built-in defaults."""
    return deepcopy(DEFAULT_SETTINGS)


def load_portfolio_settings() -> Dict[str, Any]:
    """Load the portfolio-level settings.

    Returns:
        Dictionary containing portfolio settings, or an empty default
    """
    try:
        return load_json(PORTFOLIO_SETTINGS_PATH)
    except (FileNotFoundError, json.JSONDecodeError):
        logger.warning("Could not load portfolio settings. Using built-in defaults.")
        return {}


def load_property_settings(property_id: str) -> Dict[str, Any]:
    """Load property-level settings.

    Args:
        property_id: Property identifier

    Returns:
        Dictionary containing property settings or empty dict if not found
    """
    property_settings_path = os.path.join(PROPERTY_SETTINGS_BASE_PATH, property_id, 'property_settings.json')

    try:
        return load_json(property_settings_path)
    except (FileNotFoundError, json.JSONDecodeError):
        logger.warning(f"Could not load property settings for {property_id}. Using portfolio settings.")
        return {}


def merge_settings(property_id: Optional[str] = None) -> Dict[str, Any]:
    """Load and merge settings from defaults, portfolio and property levels.

    Args:
        property_id: Optional property identifier. If provided, property settings will be merged.

    Returns:
        Dictionary with merged settings
    """
    result = deep_merge(get_default_settings(), load_portfolio_settings())

    if property_id:
        property_data = load_property_settings(property_id)
        result["settings"] = deep_merge(result["settings"], property_data.get("settings", {}))
        result["property_id"] = property_id
        result["property_name"] = property_data.get("name", f"Property {property_id}")

    return result


def load_settings(property_id: Optional[str] = None) -> Dict[str, Any]:
    """Main function to load settings for billing calculations.

    Args:
        property_id: Optional property identifier

    Returns:
        Merged settings dictionary with all required values
    """
    merged_settings = merge_settings(property_id)

    logger.debug(f"Loaded settings for property {property_id}: {merged_settings}")

    return merged_settings


def get_setting(settings: Optional[Dict[str, Any]], *path: str) -> Any:
    """
    Look up a value under the `settings` key, falling back to the default.

    Args:
        settings: Merged settings dictionary, or None for defaults
        *path: Key path below `settings`, e.g. ("carry_forward", "payments_per_period")

    Returns:
        The configured value, or the built-in default when missing or empty
    """
    default: Any = DEFAULT_SETTINGS["settings"]
    for key in path:
        default = default.get(key) if isinstance(default, dict) else None

    value: Any = (settings or {}).get("settings", {})
    for key in path:
        if not isinstance(value, dict):
            return default
        value = value.get(key)

    if value is None or value == "":
        return default
    return value


def get_critical_threshold(settings: Optional[Dict[str, Any]] = None):
    """Get the balance above which a tenant account counts as critical."""
    return to_decimal(get_setting(settings, "critical_balance_threshold"),
                      default=to_decimal(DEFAULT_SETTINGS["settings"]["critical_balance_threshold"]))


if __name__ == "__main__":
    # Example usage
    import sys

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    property_id = sys.argv[1] if len(sys.argv) > 1 else None
    settings = load_settings(property_id)

    print(json.dumps(settings, indent=2))
