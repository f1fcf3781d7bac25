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
Light custom resource

Pydantic models mirroring the wire shape of the `Light` resource stored in the
cluster (camelCase JSON keys), plus the status `Condition` type.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

GROUP = "lightcontroller.lkoskela.com"
VERSION = "v1alpha1"
API_VERSION = f"{GROUP}/{VERSION}"
KIND = "Light"
PLURAL = "lights"
SINGULAR = "light"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class LightState(str, Enum):
    SWITCHED_ON = "SwitchedOn"
    SWITCHED_OFF = "SwitchedOff"

    @property
    def is_switched_on(self) -> bool:
        return self is LightState.SWITCHED_ON


class HueSaturationColor(BaseModel):
    hue: int = Field(..., ge=0, le=100, description="Hue percentage")
    saturation: int = Field(..., ge=0, le=100, description="Saturation percentage")

    def __str__(self):
        return f"hue {self.hue}%, saturation {self.saturation}%"


class Color(BaseModel):
    """Desired color, exactly one of `ColorTemperature` (Kelvin) or `HueSaturation`"""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
        json_schema_extra={"oneOf": [{"required": ["ColorTemperature"]}, {"required": ["HueSaturation"]}]},
    )

    color_temperature: Optional[int] = Field(
        None, alias="ColorTemperature", ge=1, le=60_000, description="Color temperature in Kelvin"
    )
    hue_saturation: Optional[HueSaturationColor] = Field(None, alias="HueSaturation")

    @model_validator(mode="after")
    def check_single_mode(self):
        if (self.color_temperature is None) == (self.hue_saturation is None):
            raise ValueError("color must set exactly one of ColorTemperature or HueSaturation")
        return self


class ConditionStatus(str, Enum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"

    @classmethod
    def from_bool(cls, value: Optional[bool]) -> "ConditionStatus":
        if value is None:
            return cls.UNKNOWN
        return cls.TRUE if value else cls.FALSE


class Condition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str
    status: ConditionStatus
    reason: str = Field(..., min_length=1)
    message: str = ""
    observed_generation: Optional[int] = Field(None, alias="observedGeneration")
    last_transition_time: datetime = Field(EPOCH, alias="lastTransitionTime")

    @field_serializer("last_transition_time")
    def serialize_transition_time(self, value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class ObjectMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    namespace: Optional[str] = None
    generation: Optional[int] = None
    resource_version: Optional[str] = Field(None, alias="resourceVersion")
    uid: Optional[str] = None


class LightSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    device_id: str = Field(..., alias="deviceId", description="Smart home platform device id")
    state: LightState = Field(..., description="Whether the light should be switched on")
    color: Optional[Color] = None
    brightness: Optional[int] = Field(None, ge=0, le=100, description="Brightness percentage")


class LightResourceStatus(BaseModel):
    conditions: List[Condition] = Field(default_factory=list)


class Light(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api_version: str = Field(API_VERSION, alias="apiVersion")
    kind: str = KIND
    metadata: ObjectMeta
    spec: LightSpec
    status: Optional[LightResourceStatus] = None

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> Optional[str]:
        return self.metadata.namespace

    @property
    def generation(self) -> Optional[int]:
        return self.metadata.generation

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    def copy_conditions(self) -> List[Condition]:
        """Working copy of the stored conditions, safe to mutate"""
        if self.status is None:
            return []
        return [c.model_copy() for c in self.status.conditions]


def _structural_schema(node: Any, defs: dict) -> Any:
    """Turn pydantic JSON schema into a structural OpenAPI v3 schema (no $ref, no nullable anyOf)"""
    if isinstance(node, list):
        return [_structural_schema(item, defs) for item in node]
    if not isinstance(node, dict):
        return node

    if "$ref" in node:
        resolved = dict(defs[node["$ref"].split("/")[-1]])
        resolved.update({k: v for k, v in node.items() if k != "$ref"})
        return _structural_schema(resolved, defs)

    result = {}
    for key, value in node.items():
        if key in ("title", "$defs", "default"):
            continue
        if key == "additionalProperties" and value is False:
            continue
        if key == "properties":
            result[key] = {name: _structural_schema(prop, defs) for name, prop in value.items()}
        else:
            result[key] = _structural_schema(value, defs)

    all_of = result.pop("allOf", None)
    if all_of is not None:
        if len(all_of) == 1:
            merged = dict(all_of[0])
            merged.update(result)
            result = merged
        else:
            result["allOf"] = all_of

    any_of = result.pop("anyOf", None)
    if any_of is not None:
        non_null = [s for s in any_of if s.get("type") != "null"]
        if len(non_null) == 1:
            merged = dict(non_null[0])
            merged.update(result)
            result = merged
        else:
            result["anyOf"] = non_null
    return result


def _model_schema(model) -> dict:
    schema = model.model_json_schema(by_alias=True)
    return _structural_schema(schema, schema.get("$defs", {}))


def generate_crd() -> dict:
    """CustomResourceDefinition manifest for the Light resource"""
    return {
        "apiVersion": "apiextensions.k8s.io/v1",
        "kind": "CustomResourceDefinition",
        "metadata": {"name": f"{PLURAL}.{GROUP}"},
        "spec": {
            "group": GROUP,
            "names": {"kind": KIND, "plural": PLURAL, "singular": SINGULAR},
            "scope": "Namespaced",
            "versions": [
                {
                    "name": VERSION,
                    "served": True,
                    "storage": True,
                    "subresources": {"status": {}},
                    "schema": {
                        "openAPIV3Schema": {
                            "type": "object",
                            "required": ["spec"],
                            "properties": {
                                "spec": _model_schema(LightSpec),
                                "status": _model_schema(LightResourceStatus),
                            },
                        }
                    },
                }
            ],
        },
    }
