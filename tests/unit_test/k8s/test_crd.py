"""
Tests for the Light resource models and CRD generation.
"""

from datetime import datetime, timezone

import pytest
import yaml
from pydantic import ValidationError

from light_operator.k8s.crd import (
    API_VERSION,
    Color,
    Condition,
    ConditionStatus,
    Light,
    LightState,
    generate_crd,
)


def light_document(**spec_overrides):
    spec = {"deviceId": "5f3f8d4c-7d1e-4b8a-9b52-0d5c6f1e2a3b", "state": "SwitchedOn"}
    spec.update(spec_overrides)
    return {
        "apiVersion": API_VERSION,
        "kind": "Light",
        "metadata": {"name": "desk", "namespace": "default", "generation": 3, "labels": {"room": "study"}},
        "spec": spec,
    }


class TestLightModel:
    def test_parse_minimal(self):
        light = Light.model_validate(light_document())
        assert light.key == "default/desk"
        assert light.generation == 3
        assert light.spec.state is LightState.SWITCHED_ON
        assert light.spec.state.is_switched_on
        assert light.spec.color is None
        assert light.spec.brightness is None
        assert light.copy_conditions() == []

    def test_parse_color_temperature(self):
        light = Light.model_validate(light_document(color={"ColorTemperature": 2700}, brightness=40))
        assert light.spec.color.color_temperature == 2700
        assert light.spec.color.hue_saturation is None
        assert light.spec.brightness == 40

    def test_parse_hue_saturation(self):
        light = Light.model_validate(light_document(color={"HueSaturation": {"hue": 10, "saturation": 90}}))
        assert light.spec.color.hue_saturation.hue == 10
        assert light.spec.color.color_temperature is None

    @pytest.mark.parametrize(
        "color",
        [
            {},
            {"ColorTemperature": 2700, "HueSaturation": {"hue": 1, "saturation": 2}},
            {"ColorTemperature": 0},
            {"HueSaturation": {"hue": 101, "saturation": 2}},
            {"Rgb": "#ffffff"},
        ],
    )
    def test_invalid_color(self, color):
        with pytest.raises(ValidationError):
            Color.model_validate(color)

    @pytest.mark.parametrize("overrides", [{"state": "Dimmed"}, {"brightness": 101}, {"brightness": -1}])
    def test_invalid_spec(self, overrides):
        with pytest.raises(ValidationError):
            Light.model_validate(light_document(**overrides))

    def test_copy_conditions_is_detached(self):
        document = light_document()
        document["status"] = {
            "conditions": [
                {
                    "type": "Ready",
                    "status": "True",
                    "reason": "DeviceOnline",
                    "message": "",
                    "lastTransitionTime": "2024-01-01T00:00:00Z",
                }
            ]
        }
        light = Light.model_validate(document)
        copied = light.copy_conditions()
        copied[0].reason = "Changed"
        assert light.status.conditions[0].reason == "DeviceOnline"


class TestConditionSerialization:
    def test_camel_case_and_second_precision(self):
        condition = Condition(
            type="Ready",
            status=ConditionStatus.TRUE,
            reason="DeviceOnline",
            observed_generation=2,
            last_transition_time=datetime(2024, 3, 4, 5, 6, 7, 891011, tzinfo=timezone.utc),
        )
        assert condition.model_dump(mode="json", by_alias=True) == {
            "type": "Ready",
            "status": "True",
            "reason": "DeviceOnline",
            "message": "",
            "observedGeneration": 2,
            "lastTransitionTime": "2024-03-04T05:06:07Z",
        }

    def test_status_from_bool(self):
        assert ConditionStatus.from_bool(True) is ConditionStatus.TRUE
        assert ConditionStatus.from_bool(False) is ConditionStatus.FALSE
        assert ConditionStatus.from_bool(None) is ConditionStatus.UNKNOWN

    def test_empty_reason_rejected(self):
        with pytest.raises(ValidationError):
            Condition(type="Ready", status=ConditionStatus.TRUE, reason="")


class TestGenerateCrd:
    def test_manifest_shape(self):
        crd = generate_crd()
        assert crd["metadata"]["name"] == "lights.lightcontroller.lkoskela.com"
        assert crd["spec"]["group"] == "lightcontroller.lkoskela.com"
        assert crd["spec"]["names"]["kind"] == "Light"
        assert crd["spec"]["scope"] == "Namespaced"

        version = crd["spec"]["versions"][0]
        assert version["name"] == "v1alpha1"
        assert version["subresources"] == {"status": {}}

    def test_spec_schema(self):
        schema = generate_crd()["spec"]["versions"][0]["schema"]["openAPIV3Schema"]
        spec = schema["properties"]["spec"]
        assert set(spec["required"]) == {"deviceId", "state"}
        assert spec["properties"]["state"]["enum"] == ["SwitchedOn", "SwitchedOff"]
        assert spec["properties"]["brightness"]["type"] == "integer"
        assert spec["properties"]["brightness"]["maximum"] == 100

        color = spec["properties"]["color"]
        assert set(color["properties"]) == {"ColorTemperature", "HueSaturation"}
        assert color["oneOf"] == [{"required": ["ColorTemperature"]}, {"required": ["HueSaturation"]}]

    def test_schema_is_structural(self):
        dumped = yaml.safe_dump(generate_crd())
        assert "$ref" not in dumped
        assert "anyOf" not in dumped
        assert "null" not in dumped

    def test_status_schema(self):
        schema = generate_crd()["spec"]["versions"][0]["schema"]["openAPIV3Schema"]
        condition = schema["properties"]["status"]["properties"]["conditions"]["items"]
        assert condition["properties"]["lastTransitionTime"]["format"] == "date-time"
        assert condition["properties"]["observedGeneration"]["type"] == "integer"

    def test_no_closed_objects(self):
        assert "additionalProperties" not in yaml.safe_dump(generate_crd())
