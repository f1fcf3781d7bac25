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


from abc import ABC, abstractmethod

from light_operator.smarthome.models import LightStatus


class SmartHomeApi(ABC):
    """
    Capability contract every smart-home backend implements.

    All operations address a single device by its platform-specific id and may
    raise any `SmartHomeError` subclass. Commands are fire-and-forget: the next
    reconciliation pass verifies whether they took effect.
    """

    @abstractmethod
    async def get_light_status(self, device_id: str) -> LightStatus:
        """
        Read the current state of a light

        Args:
            device_id: Platform device identifier

        Returns:
            LightStatus, offline when the device is not reachable
        """
        pass

    @abstractmethod
    async def set_switched_on(self, device_id: str, switched_on: bool) -> None:
        """Switch the light on or off"""
        pass

    @abstractmethod
    async def set_brightness(self, device_id: str, brightness: int) -> None:
        """Set brightness as a percentage (0-100)"""
        pass

    @abstractmethod
    async def set_color_temperature(self, device_id: str, kelvin: int) -> None:
        """Set white color temperature in Kelvin"""
        pass

    @abstractmethod
    async def set_color(self, device_id: str, hue: int, saturation: int) -> None:
        """Set color from hue and saturation percentages"""
        pass

    async def aclose(self) -> None:
        """Release network resources held by the backend"""
        pass
