# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core building blocks shared by every domain: configuration, error
taxonomy and the authorization port."""
