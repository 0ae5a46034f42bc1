# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Escolar - academic calendar and enrollment lifecycle engine.

Administers school years (Draft -> Active -> Closed), the per-student
enrollment lifecycle, grade/group changes and end-of-year promotion.
"""

__version__ = "0.1.0"
