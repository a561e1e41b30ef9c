# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Infrastructure layer for CareSim.

This package contains infrastructure concerns:
- store: Document store access (Firebase Realtime Database)
"""
