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


from dataclasses import dataclass
from typing import Any, Optional

PERCENTAGE_MIN = 0
PERCENTAGE_MAX = 100
COLOR_TEMPERATURE_MIN = 1
COLOR_TEMPERATURE_MAX = 60_000


@dataclass(frozen=True)
class HueSaturation:
    """Hue and saturation, both as percentages"""

    hue: int
    saturation: int


@dataclass
class LightStatus:
    """
    Observed state of a physical light, built fresh for every reconciliation pass.

    Only `online` is meaningful for an offline device; the remaining fields are
    left at their defaults in that case. Optional fields are None when the device
    did not report the capability (or reported something unusable).
    """

    online: bool
    switched_on: bool = False
    brightness: Optional[int] = None
    color_temperature: Optional[int] = None
    color: Optional[HueSaturation] = None

    @classmethod
    def offline(cls) -> "LightStatus":
        return cls(online=False)


def to_int_in_range(value: Any, minimum: int, maximum: int) -> Optional[int]:
    """Convert a reported numeric value to an int within [minimum, maximum], or None"""
    # bool is an int subclass, but a boolean is never a valid reading
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return None
        value = round(value)
    if value < minimum or value > maximum:
        return None
    return int(value)


def clamp_percentage(value: Any) -> Optional[int]:
    """Clamp a reported numeric value into [0, 100]; non-numeric values give None"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float):
        if value != value:
            return None
        value = max(float(PERCENTAGE_MIN), min(float(PERCENTAGE_MAX), value))
        return int(round(value))
    return max(PERCENTAGE_MIN, min(PERCENTAGE_MAX, value))
