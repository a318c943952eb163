"""Device registry info shared by all entities."""

from __future__ import annotations

from homeassistant.helpers.entity import DeviceInfo

from ..const import DEFAULT_NAME, DOMAIN


def build_device_info(entry_id: str) -> DeviceInfo:
    """Device every entity of a config entry belongs to."""
    return DeviceInfo(
        identifiers={(DOMAIN, entry_id)},
        name=DEFAULT_NAME,
        manufacturer="Overnight EV Charger",
        model="Charge scheduler",
    )
