"""
Configuration and Feature Flags for the process engine

Flags are controlled via environment variables so behaviour can be toggled
without code changes.

Usage:
    from process_engine.config.settings import is_enabled

    if is_enabled('enforce_expected_revision'):
        # Reject stale batches
        ...

Environment Variables:
    ENFORCE_EXPECTED_REVISION=true/false - Reject batches whose expected
        revision no longer matches the stored one (default: true)
    PROCESS_STORE_DIR=/path - Persist versions as JSON under this directory
        instead of in memory (server only)

Rollback Strategy:
    Restore last-write-wins behaviour via environment:
    $ export ENFORCE_EXPECTED_REVISION=false
"""

import os
from typing import Dict, Optional


# Feature flags with environment variable overrides
FEATURE_FLAGS: Dict[str, bool] = {
    'enforce_expected_revision': os.getenv('ENFORCE_EXPECTED_REVISION', 'true').lower() == 'true',
}

# Auto-placement of nodes added without a layout entry (left-to-right row)
AUTO_PLACE_DEFAULT_X = 50.0
AUTO_PLACE_X_STEP = 220.0
AUTO_PLACE_Y = 150.0

# Initial layout of a freshly created process
INITIAL_START_POSITION = (100.0, 100.0)


def is_enabled(flag: str) -> bool:
    """
    Check if a feature flag is enabled.

    Args:
        flag: Feature flag name (e.g., 'enforce_expected_revision')

    Returns:
        True if flag is enabled, False otherwise

    Raises:
        KeyError: If flag name is not recognized

    Example:
        >>> is_enabled('enforce_expected_revision')
        True  # Default
    """
    if flag not in FEATURE_FLAGS:
        available = ', '.join(FEATURE_FLAGS.keys())
        raise KeyError(
            f"Unknown feature flag: '{flag}'. "
            f"Available flags: {available}"
        )

    return FEATURE_FLAGS[flag]


def get_all_flags() -> Dict[str, bool]:
    """
    Get all feature flags and their current state.

    Returns:
        Dictionary of flag names to boolean values
    """
    return FEATURE_FLAGS.copy()


def set_flag(flag: str, enabled: bool) -> None:
    """
    Programmatically set a feature flag (for testing only).

    Args:
        flag: Feature flag name
        enabled: True to enable, False to disable

    Warning:
        This is for testing only. In production, use environment variables.
    """
    if flag not in FEATURE_FLAGS:
        available = ', '.join(FEATURE_FLAGS.keys())
        raise KeyError(
            f"Unknown feature flag: '{flag}'. "
            f"Available flags: {available}"
        )

    FEATURE_FLAGS[flag] = enabled


def get_store_dir() -> Optional[str]:
    """Directory for JSON version storage, or None for in-memory."""
    return os.getenv('PROCESS_STORE_DIR') or None
