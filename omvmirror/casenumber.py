"""Case id ("OMV number") parsing."""

from __future__ import annotations

import re

from .errors import ValidationError

CASE_PREFIX = "OMV_"
CASE_ID_PATTERN = re.compile(r"^(OMV_)?([0-9]{10})$")


def normalize_case_id(raw: str) -> str:
    """Return ``OMV_<10 digits>`` for a bare or prefixed case id."""
    match = CASE_ID_PATTERN.fullmatch(raw)
    if not match:
        raise ValidationError(f"Ongekend formaat voor OMV nummer: {raw}")
    return f"{CASE_PREFIX}{match.group(2)}"
