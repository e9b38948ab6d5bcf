"""Educademy Analytics Backend.

Admin analytics for the Educademy e-learning platform: cached dashboard
reports computed from the platform database, plus one-shot data exports.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
