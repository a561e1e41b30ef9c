"""CareSim LMS Backend.

Learning-management backend serving student progress, gradebooks and
class dashboards from a Firebase Realtime Database.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
