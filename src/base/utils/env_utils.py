"""
Environment utilities
"""

import os


def get_environment() -> str:
    """Return the configured environment name (``ENVIRONMENT``), lower-cased."""
    return os.getenv("ENVIRONMENT", "").lower()


def is_local_development() -> bool:
    """
    Check if the application is running in local development environment.

    Returns:
        bool: True if running in local development, False otherwise.
    """
    return get_environment() == "development"
