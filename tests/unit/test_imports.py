# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Import order tests.

Each module is imported first in a fresh interpreter so that an import
cycle cannot hide behind modules another test already loaded.
"""

import subprocess
import sys

import pytest


class TestColdImports:
    """Tests for importing entry modules in a clean process."""

    @pytest.mark.parametrize(
        "module",
        [
            "caresim.api.app",
            "caresim.domains.class_",
            "caresim.domains.class_.service",
            "caresim.domains.progress.service",
        ],
    )
    def test_imports_first(self, module: str) -> None:
        result = subprocess.run(
            [sys.executable, "-c", f"import {module}"],
            capture_output=True,
            text=True,
            timeout=60,
        )

        assert result.returncode == 0, result.stderr
