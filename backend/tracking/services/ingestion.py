"""
Location ingestion: validate a device report, make sure its device exists and
append the sample.
"""
import logging
from typing import Any, Optional

from tracking.errors import StoreError, ValidationError
from tracking.models import LocationData
from tracking.store import Store
from tracking.validation import coerce_float, coerce_int, coerce_str, is_integer_string

logger = logging.getLogger(__name__)

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

# ig_status is a 32-bit integer column
INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1

# wire name -> model attribute
OPTIONAL_FLOAT_FIELDS = {
    "accuracy": "accuracy",
    "altitude": "altitude",
    "bearing": "bearing",
    "speed": "speed",
}

STRING_FIELDS = {
    "deviceRDT": "device_rdt",
    "gmtSettings": "gmt_settings",
    "imei": "imei",
    "localPrimaryId": "local_primary_id",
    "name": "name",
    "phoneNo": "phone_no",
    "emailAddress": "email_address",
    "provider": "provider",
    "reason": "reason",
    "versionNo": "version_no",
}


def parse_time(value: Any) -> Optional[int]:
    """Parse an epoch-millisecond value as a signed 64-bit integer.

    Accepts ints and decimal strings; anything else (or a value outside the
    64-bit range) yields None rather than an error. Never goes through float,
    so values above 2**53 survive exactly.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and is_integer_string(value.strip()):
        parsed = int(value.strip())
    else:
        return None
    if not INT64_MIN <= parsed <= INT64_MAX:
        return None
    return parsed


def normalize_location(payload: Any) -> dict[str, Any]:
    """Validate a raw report and return LocationData column values."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    if payload.get("latitude") is None or payload.get("longitude") is None:
        raise ValidationError("Latitude and longitude are required fields")

    errors = []
    values: dict[str, Any] = {}

    for key, low, high, unit in (("latitude", -90, 90, "degrees"), ("longitude", -180, 180, "degrees")):
        try:
            number = coerce_float(key, payload[key])
        except ValueError as exc:
            errors.append(str(exc))
            continue
        if number is None:
            errors.append(f"{key} is required")
        elif not low <= number <= high:
            errors.append(f"{key.capitalize()} must be between {low} and {high} {unit}")
        else:
            values[key] = number

    for key, attr in OPTIONAL_FLOAT_FIELDS.items():
        try:
            values[attr] = coerce_float(key, payload.get(key))
        except ValueError as exc:
            errors.append(str(exc))

    try:
        ig_status = coerce_int("igStatus", payload.get("igStatus"))
    except ValueError as exc:
        errors.append(str(exc))
    else:
        if ig_status is not None and not INT32_MIN <= ig_status <= INT32_MAX:
            errors.append(f"igStatus must be between {INT32_MIN} and {INT32_MAX}")
        else:
            values["ig_status"] = ig_status

    if errors:
        message = errors[0] if len(errors) == 1 else "Invalid location data"
        raise ValidationError(message, errors=errors)

    for key, attr in STRING_FIELDS.items():
        values[attr] = coerce_str(payload.get(key))

    values["time"] = parse_time(payload.get("time"))
    return values


async def link_device(store: Store, values: dict[str, Any]) -> Optional[int]:
    """Ensure a device exists for the sample's IMEI; None when that fails."""
    imei = values.get("imei")
    if not imei:
        return None
    try:
        device, created = await store.ensure_device(
            imei,
            name=values.get("name"),
            phone_no=values.get("phone_no"),
            email_address=values.get("email_address"),
        )
    except StoreError:
        # the sample is still stored, just without its device link
        logger.exception("Error handling device for IMEI %s", imei)
        return None
    if created:
        logger.info("Created new device with IMEI: %s", imei)
    else:
        logger.debug("Using existing device with IMEI: %s", imei)
    return device.id


async def ingest_location(store: Store, payload: Any) -> LocationData:
    values = normalize_location(payload)
    values["device_id"] = await link_device(store, values)
    return await store.create_location(**values)
