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
Smart-home backends

The operator only depends on the `SmartHomeApi` contract; the concrete backend
is picked from configuration at startup by `get_smart_home_api`.
"""

import asyncio

from light_operator.config import Settings, SmartHomePlatform
from light_operator.smarthome.base import SmartHomeApi
from light_operator.smarthome.errors import (
    ConfigurationError,
    InvalidIdError,
    RequestFailedError,
    SmartHomeError,
    UnknownDeviceIdError,
)
from light_operator.smarthome.models import HueSaturation, LightStatus


def get_smart_home_api(config: Settings) -> SmartHomeApi:
    """Build the backend selected by `smart_home.platform`"""
    platform = config.smart_home.platform
    if platform == SmartHomePlatform.SMARTTHINGS:
        from light_operator.smarthome.smartthings import SmartThings

        return SmartThings(config.smart_home.smartthings)
    raise ConfigurationError(f"Unsupported smart home platform: {platform}")


def check_smart_home_config(config: Settings):
    """
    Build and discard the configured backend at process start

    Raises:
        ConfigurationError: The backend cannot be constructed, e.g. no API key
    """
    api = get_smart_home_api(config)
    asyncio.run(api.aclose())


__all__ = [
    "SmartHomeApi",
    "SmartHomeError",
    "ConfigurationError",
    "InvalidIdError",
    "RequestFailedError",
    "UnknownDeviceIdError",
    "HueSaturation",
    "LightStatus",
    "get_smart_home_api",
    "check_smart_home_config",
]
