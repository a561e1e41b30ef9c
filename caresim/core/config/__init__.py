# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for CareSim.

Example:
    >>> from caresim.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from caresim.core.config.settings import (
    APISettings,
    CORSSettings,
    FirebaseSettings,
    GradebookSettings,
    JWTSettings,
    RateLimitSettings,
    Settings,
    StoreSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "FirebaseSettings",
    "StoreSettings",
    "JWTSettings",
    "RateLimitSettings",
    "CORSSettings",
    "APISettings",
    "GradebookSettings",
]
