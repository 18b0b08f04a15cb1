"""Tests for the sensor registry loader."""
import pytest

from rpimon.dht.models import SensorSpec
from rpimon.dht.registry import load_sensors, parse_sensors
from rpimon.lib.exceptions import ConfigError


class TestLoadSensors:
    """Tests for loading the sensor list file."""

    def test_loads_valid_file(self, sensors_file):
        path = sensors_file(
            "- name: livingroom\n"
            "  pin: 4\n"
            "- name: bedroom\n"
            "  pin: 17\n"
            "- name: garage_2\n"
            "  pin: 27\n"
        )

        sensors = load_sensors(path)

        assert len(sensors) == 3
        assert sensors == {
            SensorSpec(label="livingroom", pin=4),
            SensorSpec(label="bedroom", pin=17),
            SensorSpec(label="garage_2", pin=27),
        }

    def test_accepts_string_path(self, sensors_file):
        path = sensors_file("- {name: attic, pin: 0}\n")

        sensors = load_sensors(str(path))

        assert sensors == {SensorSpec(label="attic", pin=0)}

    def test_logs_registered_sensors(self, sensors_file, caplog):
        load_sensors(sensors_file("- {name: attic, pin: 22}\n"))

        assert "Registered 1 sensor(s): attic (GPIO22)" in caplog.text

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_sensors(tmp_path / "sensors.yaml")

    def test_invalid_yaml(self, sensors_file):
        path = sensors_file("- name: livingroom\n  pin: [4\n")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_sensors(path)

    def test_empty_file(self, sensors_file):
        with pytest.raises(ConfigError, match="must be a list"):
            load_sensors(sensors_file(""))

    def test_duplicate_pin_fails(self, sensors_file):
        path = sensors_file(
            "- {name: livingroom, pin: 4}\n"
            "- {name: bedroom, pin: 4}\n"
        )

        with pytest.raises(ConfigError, match="duplicate pin 4"):
            load_sensors(path)

    def test_duplicate_name_fails(self, sensors_file):
        path = sensors_file(
            "- {name: livingroom, pin: 4}\n"
            "- {name: livingroom, pin: 17}\n"
        )

        with pytest.raises(ConfigError, match="duplicate name 'livingroom'"):
            load_sensors(path)


class TestParseSensors:
    """Tests for sensor record validation."""

    def test_size_matches_record_count(self):
        records = [{"name": f"sensor{i}", "pin": i} for i in range(8)]

        sensors = parse_sensors(records)

        assert len(sensors) == len(records)
        assert {s.pin for s in sensors} == set(range(8))

    def test_not_a_list(self):
        with pytest.raises(ConfigError, match="must be a list"):
            parse_sensors({"name": "livingroom", "pin": 4})

    def test_empty_list(self):
        with pytest.raises(ConfigError, match="does not define any sensors"):
            parse_sensors([])

    @pytest.mark.parametrize(
        "record",
        [
            {"name": "", "pin": 4},
            {"name": "Living", "pin": 4},
            {"name": "living room", "pin": 4},
            {"name": "living\troom", "pin": 4},
            {"name": 42, "pin": 4},
            {"pin": 4},
        ],
    )
    def test_invalid_name(self, record):
        with pytest.raises(ConfigError, match="record 0: name"):
            parse_sensors([record])

    @pytest.mark.parametrize(
        "record",
        [
            {"name": "livingroom", "pin": -1},
            {"name": "livingroom", "pin": "4"},
            {"name": "livingroom", "pin": 4.5},
            {"name": "livingroom", "pin": True},
            {"name": "livingroom"},
        ],
    )
    def test_invalid_pin(self, record):
        with pytest.raises(ConfigError, match="record 0: pin"):
            parse_sensors([record])

    def test_unknown_field(self):
        with pytest.raises(ConfigError, match="record 0"):
            parse_sensors([{"name": "livingroom", "pin": 4, "pim": 5}])

    def test_reports_every_invalid_record(self):
        records = [
            {"name": "livingroom", "pin": 4},
            {"name": "Bedroom", "pin": 17},
            {"name": "garage", "pin": 4},
        ]

        with pytest.raises(ConfigError) as exc_info:
            parse_sensors(records)

        message = str(exc_info.value)
        assert "record 1: name" in message
        assert "record 2: duplicate pin 4" in message

    def test_duplicate_pin_and_name(self):
        records = [
            {"name": "livingroom", "pin": 4},
            {"name": "livingroom", "pin": 4},
        ]

        with pytest.raises(ConfigError) as exc_info:
            parse_sensors(records)

        assert "duplicate name" in str(exc_info.value)
        assert "duplicate pin" in str(exc_info.value)


class TestSensorSpec:
    """Tests for the SensorSpec model."""

    def test_is_immutable(self):
        spec = SensorSpec(label="livingroom", pin=4)

        with pytest.raises(Exception):
            spec.pin = 5

    def test_is_hashable(self):
        assert len({SensorSpec(label="a", pin=1), SensorSpec(label="a", pin=1)}) == 1

    def test_name_alias(self):
        assert SensorSpec.model_validate({"name": "attic", "pin": 3}).label == "attic"

    def test_str(self):
        assert str(SensorSpec(label="attic", pin=3)) == "attic (GPIO3)"
