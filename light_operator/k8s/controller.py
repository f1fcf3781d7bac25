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
Light reconciliation

One pass reads the device, records what was learned as status conditions,
issues the commands needed to converge the device to the spec and writes the
status back once. The caller decides when the next pass runs from the
returned Action.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from light_operator.config import Settings
from light_operator.k8s.conditions import (
    CONDITION_INVALID_DEVICE,
    CONDITION_READY,
    create_condition,
    ensure_condition,
    update_conditions,
)
from light_operator.k8s.crd import Condition, Light, LightSpec
from light_operator.k8s.errors import KubernetesError, SmartHomeApiError
from light_operator.k8s.store import LightStore
from light_operator.smarthome import (
    ConfigurationError,
    InvalidIdError,
    LightStatus,
    RequestFailedError,
    SmartHomeApi,
    SmartHomeError,
    UnknownDeviceIdError,
)

logger = logging.getLogger(__name__)

REASON_ID_IS_INVALID = "IdIsInvalid"
REASON_DEVICE_NOT_FOUND = "DeviceNotFound"
REASON_DEVICE_ID_OK = "DeviceIdOk"
REASON_INVALID_DEVICE = "InvalidDevice"
REASON_DEVICE_OFFLINE = "DeviceOffline"
REASON_DEVICE_ONLINE = "DeviceOnline"

MESSAGE_INVALID_DEVICE = "Device ID is invalid or unknown"
MESSAGE_DEVICE_OFFLINE = "Light device is offline"


@dataclass
class Action:
    """When the resource should be looked at again; None means wait for a change"""

    requeue_after: Optional[float] = None

    @classmethod
    def requeue(cls, seconds: float) -> "Action":
        return cls(requeue_after=seconds)

    @classmethod
    def await_change(cls) -> "Action":
        return cls()


@dataclass
class Context:
    config: Settings
    smart_home_api: SmartHomeApi
    store: LightStore


# A pending device command; `description` is used for logging
@dataclass
class Command:
    description: str
    execute: Callable[[], Awaitable[None]]


CommandRule = Callable[[str, LightSpec, LightStatus, SmartHomeApi], Optional[Command]]


def switch_rule(device_id: str, spec: LightSpec, status: LightStatus, api: SmartHomeApi) -> Optional[Command]:
    desired = spec.state.is_switched_on
    if status.switched_on == desired:
        return None
    return Command(
        f"switch {'on' if desired else 'off'}",
        lambda: api.set_switched_on(device_id, desired),
    )


def brightness_rule(device_id: str, spec: LightSpec, status: LightStatus, api: SmartHomeApi) -> Optional[Command]:
    if spec.brightness is None or status.brightness == spec.brightness:
        return None
    return Command(
        f"set brightness to {spec.brightness}%",
        lambda: api.set_brightness(device_id, spec.brightness),
    )


def color_rule(device_id: str, spec: LightSpec, status: LightStatus, api: SmartHomeApi) -> Optional[Command]:
    color = spec.color
    if color is None:
        return None

    if color.color_temperature is not None:
        if status.color_temperature == color.color_temperature:
            return None
        return Command(
            f"set color temperature to {color.color_temperature}K",
            lambda: api.set_color_temperature(device_id, color.color_temperature),
        )

    desired = color.hue_saturation
    observed = status.color
    if observed is not None and observed.hue == desired.hue and observed.saturation == desired.saturation:
        return None
    return Command(
        f"set color to {desired}",
        lambda: api.set_color(device_id, desired.hue, desired.saturation),
    )


COMMAND_RULES: List[CommandRule] = [switch_rule, brightness_rule, color_rule]


def plan_commands(device_id: str, spec: LightSpec, status: LightStatus, api: SmartHomeApi) -> List[Command]:
    """Commands needed to converge an online device, in rule order"""
    commands = []
    for rule in COMMAND_RULES:
        command = rule(device_id, spec, status, api)
        if command is not None:
            commands.append(command)
    return commands


def invalid_device_condition(error: Optional[SmartHomeError], generation: Optional[int]) -> Condition:
    """Map the outcome of a status read to the InvalidDevice condition"""
    if isinstance(error, InvalidIdError):
        return create_condition(CONDITION_INVALID_DEVICE, True, REASON_ID_IS_INVALID, MESSAGE_INVALID_DEVICE, generation)
    if isinstance(error, UnknownDeviceIdError):
        return create_condition(
            CONDITION_INVALID_DEVICE, True, REASON_DEVICE_NOT_FOUND, MESSAGE_INVALID_DEVICE, generation
        )
    # ConfigurationError and RequestFailedError say nothing about the id itself
    return create_condition(CONDITION_INVALID_DEVICE, False, REASON_DEVICE_ID_OK, None, generation)


async def _patch_status(light: Light, conditions: List[Condition], ctx: Context):
    try:
        await ctx.store.patch_status(light.namespace, light.name, conditions)
    except KubernetesError:
        raise
    except Exception as e:
        raise KubernetesError(f"Failed to patch status of Light {light.key}: {e}") from e


async def reconcile(light: Light, ctx: Context) -> Action:
    """
    Run one reconciliation pass for a Light

    Args:
        light: Resource as last read from the store
        ctx: Shared dependencies of the pass

    Returns:
        Action telling when to run the next pass

    Raises:
        SmartHomeApiError: The device could not be read or a command failed
        KubernetesError: The status could not be written
    """
    spec = light.spec
    generation = light.generation
    logger.info(f"Reconciling Light {light.key} (device {spec.device_id})")

    conditions = light.copy_conditions()
    ensure_condition(conditions, CONDITION_INVALID_DEVICE, generation)
    ensure_condition(conditions, CONDITION_READY, generation)

    try:
        status = await ctx.smart_home_api.get_light_status(spec.device_id)
    except SmartHomeError as e:
        if isinstance(e, (ConfigurationError, RequestFailedError)):
            logger.warning(f"Could not read device {spec.device_id} of Light {light.key}: {e}")
        update_conditions(conditions, invalid_device_condition(e, generation))
        update_conditions(conditions, create_condition(CONDITION_READY, False, REASON_INVALID_DEVICE, None, generation))
        await _patch_status(light, conditions, ctx)
        raise SmartHomeApiError(e) from e

    update_conditions(conditions, invalid_device_condition(None, generation))

    if not status.online:
        logger.info(f"Device {spec.device_id} of Light {light.key} is offline")
        update_conditions(
            conditions,
            create_condition(CONDITION_READY, False, REASON_DEVICE_OFFLINE, MESSAGE_DEVICE_OFFLINE, generation),
        )
    else:
        for command in plan_commands(spec.device_id, spec, status, ctx.smart_home_api):
            logger.info(f"Light {light.key}: {command.description}")
            try:
                await command.execute()
            except SmartHomeError as e:
                raise SmartHomeApiError(e) from e
        update_conditions(conditions, create_condition(CONDITION_READY, True, REASON_DEVICE_ONLINE, None, generation))

    await _patch_status(light, conditions, ctx)
    return Action.requeue(ctx.config.controller.sync_interval_seconds)


def error_policy(light: Light, error: Exception, ctx: Context) -> Action:
    """Requeue a failed pass after a fixed delay"""
    logger.error(f"Reconciliation of Light {light.key} failed: {error}", exc_info=error)
    return Action.requeue(ctx.config.controller.error_requeue_seconds)
