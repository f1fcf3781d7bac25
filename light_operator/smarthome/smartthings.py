# Copyright 2025 ApeCloud, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""
SmartThings backend

Talks to the SmartThings REST API: commands are POSTed to
``devices/{id}/commands`` and state is read from ``devices/{id}/status``, whose
body nests every capability under ``components.main.<capability>.<attribute>``.
"""

import asyncio
import logging
import uuid
from datetime import datetime
from http import HTTPStatus
from typing import Any, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from light_operator import __version__
from light_operator.config import SmartThingsSettings
from light_operator.smarthome.base import SmartHomeApi
from light_operator.smarthome.errors import (
    ConfigurationError,
    InvalidIdError,
    RequestFailedError,
    UnknownDeviceIdError,
)
from light_operator.smarthome.models import (
    COLOR_TEMPERATURE_MAX,
    COLOR_TEMPERATURE_MIN,
    PERCENTAGE_MAX,
    PERCENTAGE_MIN,
    HueSaturation,
    LightStatus,
    clamp_percentage,
    to_int_in_range,
)

logger = logging.getLogger(__name__)

APP_USER_AGENT = f"light-operator/{__version__}"

MAIN_COMPONENT = "main"
DEVICE_ONLINE = "online"
SWITCH_ON = "on"

# Transition rate passed along with switchLevel.setLevel
SET_LEVEL_RATE = 20


class CapabilityAttribute(BaseModel):
    """One reported attribute, e.g. components.main.switchLevel.level"""

    model_config = ConfigDict(extra="ignore")

    value: Any = None
    unit: Optional[str] = None
    timestamp: Optional[datetime] = None


def _attribute(component: dict, capability: str, attribute: str) -> Optional[CapabilityAttribute]:
    section = component.get(capability)
    if not isinstance(section, dict):
        return None
    raw = section.get(attribute)
    if not isinstance(raw, dict):
        return None
    try:
        return CapabilityAttribute.model_validate(raw)
    except ValidationError as e:
        logger.debug(f"Ignoring malformed {capability}.{attribute} report: {e}")
        return None


def parse_light_status(payload: Any) -> LightStatus:
    """
    Decode a device status payload into a LightStatus

    Every capability is optional. A missing or malformed report only removes that
    one reading; it never fails the whole decode.
    """
    components = payload.get("components") if isinstance(payload, dict) else None
    main = components.get(MAIN_COMPONENT) if isinstance(components, dict) else None
    if not isinstance(main, dict):
        return LightStatus.offline()

    health = _attribute(main, "healthCheck", "DeviceWatch-DeviceStatus")
    if health is None or health.value != DEVICE_ONLINE:
        return LightStatus.offline()

    switch = _attribute(main, "switch", "switch")
    level = _attribute(main, "switchLevel", "level")
    temperature = _attribute(main, "colorTemperature", "colorTemperature")
    hue = _attribute(main, "colorControl", "hue")
    saturation = _attribute(main, "colorControl", "saturation")

    color = None
    if hue is not None and saturation is not None:
        hue_value = to_int_in_range(hue.value, PERCENTAGE_MIN, PERCENTAGE_MAX)
        saturation_value = to_int_in_range(saturation.value, PERCENTAGE_MIN, PERCENTAGE_MAX)
        if hue_value is not None and saturation_value is not None:
            color = HueSaturation(hue=hue_value, saturation=saturation_value)

    return LightStatus(
        online=True,
        switched_on=switch is not None and switch.value == SWITCH_ON,
        brightness=clamp_percentage(level.value) if level is not None else None,
        color_temperature=(
            to_int_in_range(temperature.value, COLOR_TEMPERATURE_MIN, COLOR_TEMPERATURE_MAX)
            if temperature is not None
            else None
        ),
        color=color,
    )


class SmartThings(SmartHomeApi):
    """SmartHomeApi implementation backed by the SmartThings cloud"""

    def __init__(self, config: SmartThingsSettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        if not config.api_key:
            raise ConfigurationError("SmartThings API key not configured")

        self.settle_delay = config.settle_delay
        self.client = httpx.AsyncClient(
            base_url=config.base_url,
            headers={
                "Authorization": f"Bearer {config.api_key}",
                "User-Agent": APP_USER_AGENT,
            },
            timeout=config.request_timeout,
            transport=transport,
        )

    @staticmethod
    def validate_device_id(device_id: str) -> str:
        """Return the canonical form of a device id, raising InvalidIdError if it is not a UUID"""
        try:
            return str(uuid.UUID(device_id))
        except (TypeError, ValueError, AttributeError):
            raise InvalidIdError(device_id)

    async def _request(self, device_id: str, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise RequestFailedError(f"{method} {path}: {e}") from e

        # SmartThings answers 403 for devices that do not exist or are not ours
        if response.status_code in (HTTPStatus.FORBIDDEN, HTTPStatus.NOT_FOUND):
            raise UnknownDeviceIdError(device_id)
        if not response.is_success:
            raise RequestFailedError(f"{method} {path} returned HTTP {response.status_code}")
        return response

    async def _send_command(self, device_id: str, capability: str, command: str, arguments: List[Any] = None):
        canonical_id = self.validate_device_id(device_id)
        body = {
            "commands": [
                {
                    "component": MAIN_COMPONENT,
                    "capability": capability,
                    "command": command,
                    "arguments": arguments or [],
                }
            ]
        }
        await self._request(device_id, "POST", f"devices/{canonical_id}/commands", json=body)

    async def ping(self, device_id: str):
        logger.info(f"Pinging device {device_id}")
        await self._send_command(device_id, "healthCheck", "ping")

    async def get_light_status(self, device_id: str) -> LightStatus:
        canonical_id = self.validate_device_id(device_id)
        await self.ping(device_id)
        # Liveness is propagated asynchronously upstream, an immediate read races the ping
        await asyncio.sleep(self.settle_delay)

        logger.info(f"Getting status for device {device_id}")
        response = await self._request(device_id, "GET", f"devices/{canonical_id}/status")
        try:
            payload = response.json()
        except ValueError as e:
            raise RequestFailedError(f"Invalid status body for device {device_id}: {e}") from e

        status = parse_light_status(payload)
        logger.debug(f"Device {device_id} status: {status}")
        return status

    async def set_switched_on(self, device_id: str, switched_on: bool) -> None:
        await self._send_command(device_id, "switch", "on" if switched_on else "off")

    async def set_brightness(self, device_id: str, brightness: int) -> None:
        level = max(PERCENTAGE_MIN, min(PERCENTAGE_MAX, int(round(brightness))))
        await self._send_command(device_id, "switchLevel", "setLevel", [level, SET_LEVEL_RATE])

    async def set_color_temperature(self, device_id: str, kelvin: int) -> None:
        await self._send_command(device_id, "colorTemperature", "setColorTemperature", [kelvin])

    async def set_color(self, device_id: str, hue: int, saturation: int) -> None:
        await self._send_command(device_id, "colorControl", "setColor", [{"hue": hue, "saturation": saturation}])

    async def aclose(self) -> None:
        await self.client.aclose()
