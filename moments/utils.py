"""
Utility functions for the Moments API.
"""

import base64
import binascii
import logging
import math
import re
import time
from datetime import datetime, timezone
from typing import Any

from moments.errors import DecodeError

logger = logging.getLogger(__name__)

# Leading decimal number, as accepted at the start of a rotation string
_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def now_millis() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def iso_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision, e.g. 2025-01-15T10:00:00.123Z."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def parse_rotation(value: Any) -> float:
    """
    Parse a rotation hint into degrees.

    Numbers pass through. Strings are read up to the end of their leading
    number, so "90deg" is 90.0. Anything unparseable or non-finite becomes 0.0.

    Args:
        value: Raw rotation from a request parameter or a stored cell

    Returns:
        Rotation as a float
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        result = float(value)
    else:
        match = _LEADING_FLOAT.match(str(value if value is not None else ""))
        if not match:
            return 0.0
        result = float(match.group(1))
    if math.isnan(result) or math.isinf(result):
        return 0.0
    return result


def strip_data_url(image_data: str) -> str:
    """Drop a data-URL header such as 'data:image/jpeg;base64,' if present."""
    _, sep, rest = image_data.partition(",")
    if sep and rest:
        return rest
    return image_data


def decode_image_data(image_data: str) -> bytes:
    """
    Decode a base64 image payload, with or without a data-URL header.

    Raises:
        DecodeError: payload is not valid base64
    """
    payload = "".join(strip_data_url(image_data).split())
    logger.debug(f"Decoding base64 payload of {len(payload)} chars")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 image data: {e}") from e
