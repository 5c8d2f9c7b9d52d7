# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core package for examrecall.

This package contains the engine and its configuration:
- config: Settings and versioned weight tables
- scheduling: Card state machine, schedulers, exam phases, load balancing
"""
