# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API middleware components.

Exports:
    AuthMiddleware: JWT authentication middleware.
    limiter: slowapi rate limiter shared by the app.
"""

from caresim.api.middleware.auth import AuthMiddleware, CurrentUser
from caresim.api.middleware.rate_limit import limiter, rate_limit_exceeded_handler

__all__ = [
    "AuthMiddleware",
    "CurrentUser",
    "limiter",
    "rate_limit_exceeded_handler",
]
