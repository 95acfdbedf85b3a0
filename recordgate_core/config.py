"""
recordgate_core.config
----------------------
Environment-driven settings. Values are read at call time so tests can
monkeypatch the environment.
"""

import os
from typing import List

from .utils import normalize_address


def admin_addresses() -> List[str]:
    raw = os.getenv("RECORDGATE_ADMINS", "")
    return [normalize_address(a) for a in raw.split(",") if a.strip()]
