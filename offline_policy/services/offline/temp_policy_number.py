"""Temporary policy numbers for entries created before a server ID exists.

Format: ``TEMP-<UTC yyyymmddHHMMSS>-<6 hex digits>``. Server-issued numbers
use the ``POL-`` prefix, so the two never collide.
"""

import re
import secrets
from datetime import datetime, timezone
from typing import Optional

TEMP_POLICY_PREFIX = "TEMP"

_TEMP_POLICY_PATTERN = re.compile(rf"^{TEMP_POLICY_PREFIX}-\d{{14}}-[0-9A-F]{{6}}$")


def generate_temp_policy_number(now: Optional[datetime] = None) -> str:
    """Generate a temporary policy number.

    Args:
        now: Timestamp to embed (defaults to the current UTC time)

    Returns:
        str: Placeholder such as ``TEMP-20261018093015-4F0A9C``
    """
    now = now or datetime.now(timezone.utc)
    suffix = secrets.token_hex(3).upper()
    return f"{TEMP_POLICY_PREFIX}-{now:%Y%m%d%H%M%S}-{suffix}"


def is_temp_policy_number(value: Optional[str]) -> bool:
    """Return True only for values produced by ``generate_temp_policy_number``."""
    if not value:
        return False
    return _TEMP_POLICY_PATTERN.match(value) is not None
