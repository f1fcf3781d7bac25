"""
Tests for decoding SmartThings device status payloads into LightStatus.
"""

import pytest

from light_operator.smarthome.models import HueSaturation, LightStatus, clamp_percentage, to_int_in_range
from light_operator.smarthome.smartthings import parse_light_status


def status_payload(**capabilities):
    main = {"healthCheck": {"DeviceWatch-DeviceStatus": {"value": "online"}}}
    main.update(capabilities)
    return {"components": {"main": main}}


class TestOnlineDetection:
    """Liveness comes from healthCheck.DeviceWatch-DeviceStatus only."""

    def test_online_device(self):
        status = parse_light_status(status_payload(switch={"switch": {"value": "on"}}))
        assert status.online is True
        assert status.switched_on is True

    @pytest.mark.parametrize("value", ["offline", "OFFLINE", None, 1])
    def test_not_online_values(self, value):
        payload = status_payload()
        payload["components"]["main"]["healthCheck"]["DeviceWatch-DeviceStatus"]["value"] = value
        assert parse_light_status(payload) == LightStatus.offline()

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            None,
            [],
            {"components": {}},
            {"components": {"main": "broken"}},
            {"components": {"main": {}}},
            {"components": {"main": {"healthCheck": {}}}},
        ],
    )
    def test_missing_health_means_offline(self, payload):
        assert parse_light_status(payload).online is False

    def test_offline_ignores_other_readings(self):
        payload = {
            "components": {
                "main": {
                    "healthCheck": {"DeviceWatch-DeviceStatus": {"value": "offline"}},
                    "switch": {"switch": {"value": "on"}},
                    "switchLevel": {"level": {"value": 80}},
                }
            }
        }
        status = parse_light_status(payload)
        assert status == LightStatus(online=False)


class TestCapabilityReadings:
    """Each capability is decoded independently and tolerates bad data."""

    def test_full_payload(self):
        payload = status_payload(
            switch={"switch": {"value": "off", "timestamp": "2024-05-01T10:00:00.000Z"}},
            switchLevel={"level": {"value": 42, "unit": "%"}},
            colorTemperature={"colorTemperature": {"value": 2700, "unit": "K"}},
            colorControl={"hue": {"value": 30}, "saturation": {"value": 75.4}},
        )
        status = parse_light_status(payload)
        assert status == LightStatus(
            online=True,
            switched_on=False,
            brightness=42,
            color_temperature=2700,
            color=HueSaturation(hue=30, saturation=75),
        )

    def test_missing_capabilities_are_none(self):
        status = parse_light_status(status_payload())
        assert status.online is True
        assert status.switched_on is False
        assert status.brightness is None
        assert status.color_temperature is None
        assert status.color is None

    def test_brightness_is_clamped(self):
        assert parse_light_status(status_payload(switchLevel={"level": {"value": 140}})).brightness == 100
        assert parse_light_status(status_payload(switchLevel={"level": {"value": -3}})).brightness == 0

    @pytest.mark.parametrize("value", ["50", True, None, [50]])
    def test_non_numeric_brightness(self, value):
        assert parse_light_status(status_payload(switchLevel={"level": {"value": value}})).brightness is None

    @pytest.mark.parametrize("value", [0, 60_001, "warm"])
    def test_out_of_range_color_temperature(self, value):
        payload = status_payload(colorTemperature={"colorTemperature": {"value": value}})
        assert parse_light_status(payload).color_temperature is None

    def test_color_requires_both_hue_and_saturation(self):
        payload = status_payload(colorControl={"hue": {"value": 30}})
        assert parse_light_status(payload).color is None

        payload = status_payload(colorControl={"hue": {"value": 30}, "saturation": {"value": 101}})
        assert parse_light_status(payload).color is None

    def test_malformed_attribute_report(self):
        payload = status_payload(switch={"switch": "on"}, switchLevel={"level": {"value": 10, "timestamp": "soon"}})
        status = parse_light_status(payload)
        assert status.switched_on is False
        assert status.brightness is None


class TestNumericHelpers:
    def test_to_int_in_range_rounds(self):
        assert to_int_in_range(49.6, 0, 100) == 50
        assert to_int_in_range(100, 0, 100) == 100

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), False, "1", None, -1, 101])
    def test_to_int_in_range_rejects(self, value):
        assert to_int_in_range(value, 0, 100) is None

    def test_clamp_percentage(self):
        assert clamp_percentage(99.7) == 100
        assert clamp_percentage(250.0) == 100
        assert clamp_percentage(-1) == 0
        assert clamp_percentage(float("nan")) is None
        assert clamp_percentage(True) is None
