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


"""Error taxonomy for smart-home backends"""


class SmartHomeError(Exception):
    """Base class for every error raised by a smart-home backend"""


class ConfigurationError(SmartHomeError):
    """The backend is not configured well enough to be constructed"""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Configuration error: {detail}")


class InvalidIdError(SmartHomeError):
    """The device id does not match the platform's identifier format"""

    def __init__(self, device_id: str):
        self.device_id = device_id
        super().__init__(f"Invalid ID `{device_id}`")


class RequestFailedError(SmartHomeError):
    """Transport failure or unexpected HTTP response"""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Request failed: {detail}")


class UnknownDeviceIdError(SmartHomeError):
    """The platform does not know the device (or refuses access to it)"""

    def __init__(self, device_id: str = None):
        self.device_id = device_id
        super().__init__("Device was not found")
