"""
Configuration resolution: the singleton default configuration and the
per-device overrides layered on top of it.

The two merge paths differ:

* ``merge_device_config`` (POST /devices/{imei}/config) only overwrites a
  stored value when the supplied one is truthy, so ``"0"`` or ``""`` leave the
  stored value untouched.
* ``merge_default_config`` (PUT /configs/default) overwrites every supplied
  field, including ``"0"``; only ``baseUrl`` keeps the truthiness check.
"""
import logging
from typing import Any, Optional

from tracking.errors import NotFoundError
from tracking.models import CONFIG_ATTRIBUTES, DefaultConfig, Device, DeviceConfig
from tracking.store import Store
from tracking.validation import is_digit_string, validate_config_payload

logger = logging.getLogger(__name__)


def is_truthy(value: Optional[str]) -> bool:
    """Truthiness used by the per-device merge: empty and zero values are falsy."""
    if value is None or value == "":
        return False
    if is_digit_string(value):
        return int(value) != 0
    return True


def merge_device_config(values: dict[str, str]):
    def apply(config: DeviceConfig) -> None:
        for attr, value in values.items():
            if is_truthy(value):
                setattr(config, attr, value)

    return apply


def merge_default_config(values: dict[str, str]):
    def apply(config: DefaultConfig) -> None:
        for attr, value in values.items():
            if attr == "base_url" and not value:
                continue
            setattr(config, attr, value)

    return apply


async def ensure_default_config(store: Store) -> DefaultConfig:
    config, created = await store.ensure_default_config()
    if created:
        logger.info("Default configuration created")
    return config


async def update_default_config(store: Store, payload: Any) -> DefaultConfig:
    values = validate_config_payload(payload)
    config = await store.update_default_config(merge_default_config(values))
    logger.info("Default configuration updated: %s", ", ".join(sorted(values)))
    return config


async def _require_device(store: Store, imei: str) -> Device:
    device = await store.get_device(imei)
    if device is None:
        raise NotFoundError("Device not found")
    return device


async def set_device_config(store: Store, imei: str, payload: Any) -> tuple[DeviceConfig, bool]:
    """Create the device's config from the payload, or merge into the existing one.

    On creation only the supplied fields are stored; nothing is backfilled
    from the default configuration.
    """
    values = validate_config_payload(payload)
    await _require_device(store, imei)
    config, created = await store.upsert_device_config(imei, values, merge_device_config(values))
    logger.info("Device configuration %s for IMEI %s", "created" if created else "updated", imei)
    return config, created


async def get_device_config(store: Store, imei: str) -> DeviceConfig:
    await _require_device(store, imei)
    config = await store.get_device_config(imei)
    if config is None:
        raise NotFoundError("Configuration not found for this device")
    return config


async def delete_device_config(store: Store, imei: str) -> None:
    if not await store.delete_device_config(imei):
        raise NotFoundError("Configuration not found for this device")
    logger.info("Device configuration deleted for IMEI %s", imei)


async def resolve_effective_config(store: Store, imei: str) -> dict[str, Any]:
    """Per-field: the device's own value when set, otherwise the default."""
    device = await _require_device(store, imei)
    default = await ensure_default_config(store)
    override = await store.get_device_config(imei)

    values = {}
    overridden = []
    for attr in CONFIG_ATTRIBUTES:
        own = getattr(override, attr) if override is not None else None
        if own is not None:
            values[attr] = own
            overridden.append(attr)
        else:
            values[attr] = getattr(default, attr)
    return {"device": device, "values": values, "overridden": overridden}


async def list_device_configs(store: Store, limit: int, offset: int) -> tuple[list[DeviceConfig], int]:
    configs = await store.list_device_configs(limit, offset)
    total = await store.count_device_configs()
    return configs, total
