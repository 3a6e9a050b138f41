"""
Static field tables and validators for loosely-typed client payloads.

Device payloads arrive as free-form JSON objects: numbers may be sent as
numbers or as strings, and configuration values are persisted as text. The
helpers here check a payload against the recognised field table before any
domain logic runs and hand back values keyed by model attribute name.
"""
import math
import re
from typing import Any, Callable, Optional

from pydantic import AnyUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from tracking.errors import ValidationError

# ASCII only: str.isdigit and \d also accept other scripts
_DIGITS = re.compile(r"[0-9]+")
_INTEGER = re.compile(r"-?[0-9]+")
_URL_ADAPTER = TypeAdapter(AnyUrl)

# wire name -> model attribute
NUMERIC_CONFIG_FIELDS = {
    "gpsTimer": "gps_timer",
    "configTimer": "config_timer",
    "uploadTimer": "upload_timer",
    "retryCounter": "retry_counter",
    "angleThreshold": "angle_threshold",
    "overSpeedingThreshold": "over_speeding_threshold",
    "travelStartTimer": "travel_start_timer",
    "travelStopTimer": "travel_stop_timer",
    "movingTimer": "moving_timer",
    "stopTimer": "stop_timer",
    "distanceThreshold": "distance_threshold",
    "heartbeatTimer": "heartbeat_timer",
    "liveStatusUpdateTimer": "live_status_update_timer",
}

CONFIG_FIELDS = {**NUMERIC_CONFIG_FIELDS, "baseUrl": "base_url"}


def is_digit_string(value: str) -> bool:
    return _DIGITS.fullmatch(value) is not None


def is_integer_string(value: str) -> bool:
    """Optionally signed run of ASCII digits, no separators or whitespace."""
    return _INTEGER.fullmatch(value) is not None


def _non_negative_integer(key: str, value: Any) -> str:
    if isinstance(value, bool):
        raise ValueError(f"{key} must be a valid non-negative integer")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"{key} must be a valid non-negative integer")
        return str(value)
    if isinstance(value, str) and is_digit_string(value.strip()):
        return value.strip()
    raise ValueError(f"{key} must be a valid non-negative integer")


def _absolute_url(key: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    if not value:
        return value
    try:
        url = _URL_ADAPTER.validate_python(value)
    except PydanticValidationError:
        raise ValueError(f"{key} must be a valid URL") from None
    if not url.host:
        raise ValueError(f"{key} must be a valid URL")
    # keep the caller's spelling, AnyUrl normalises trailing slashes
    return value


CONFIG_VALIDATORS: dict[str, Callable[[str, Any], str]] = {
    **{key: _non_negative_integer for key in NUMERIC_CONFIG_FIELDS},
    "baseUrl": _absolute_url,
}


def validate_config_payload(payload: Any) -> dict[str, str]:
    """Validate a configuration payload and return ``{attribute: text}``.

    Only the keys present in the payload are returned; ``null`` values are
    treated as absent.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    provided = [key for key in payload if key in CONFIG_FIELDS and payload[key] is not None]
    if not provided:
        raise ValidationError(
            "At least one configuration field must be provided",
            details={"validFields": list(CONFIG_FIELDS)},
        )

    errors = []
    values = {}
    for key, value in payload.items():
        if key not in CONFIG_FIELDS:
            errors.append(f"Invalid configuration field: {key}")
            continue
        if value is None:
            continue
        try:
            values[CONFIG_FIELDS[key]] = CONFIG_VALIDATORS[key](key, value)
        except ValueError as exc:
            errors.append(str(exc))

    if errors:
        raise ValidationError("Validation failed", errors=errors)
    return values


def coerce_float(key: str, value: Any) -> Optional[float]:
    """Coerce a JSON number or numeric string to a finite float."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"{key} must be a number")
    try:
        number = float(value)
    except OverflowError:
        raise ValueError(f"{key} must be a finite number") from None
    except (TypeError, ValueError):
        raise ValueError(f"{key} must be a number") from None
    if not math.isfinite(number):
        raise ValueError(f"{key} must be a finite number")
    return number


def coerce_int(key: str, value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"{key} must be an integer")
        return int(value)
    if isinstance(value, str) and is_integer_string(value.strip()):
        return int(value.strip())
    raise ValueError(f"{key} must be an integer")


def coerce_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
