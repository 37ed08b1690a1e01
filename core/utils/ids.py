"""
Centralized identifier generation.

Execution ids are time-prefixed so they sort roughly by creation and carry
a random suffix so that concurrent creations within the same millisecond
do not collide.
"""

from __future__ import annotations

import secrets
import string
import time

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def _random_suffix(length: int) -> str:
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(length))


def generate_execution_id(prefix: str = "exec", suffix_length: int = 9) -> str:
    """Generate an id of the form ``exec-<epoch ms>-<random suffix>``."""
    ts_ms = int(time.time() * 1000)
    return f"{prefix}-{ts_ms}-{_random_suffix(suffix_length)}"
