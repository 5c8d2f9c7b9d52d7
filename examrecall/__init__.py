"""examrecall scheduling engine.

Decides when a learner should next see a flashcard, either cramming
towards a fixed exam date or retaining it indefinitely with an adaptive
memory model.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
