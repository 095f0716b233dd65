"""Unit tests for addon config schemas."""

import pytest

from convoy.addons.schema import (
    AddonSchema,
    Cron,
    Duration,
    OpenConfig,
    ValidationResult,
    is_cron,
    is_duration,
    validate_config,
)


class ScheduleSchema(AddonSchema):
    schedule: Cron
    window: Duration | None = None


class TestDuration:
    """Test duration predicate."""

    @pytest.mark.parametrize("value", ["1h30m", "5 minutes", "1d", "45s"])
    def test_valid(self, value):
        assert is_duration(value) is True

    @pytest.mark.parametrize("value", ["soon", "", None, 30])
    def test_invalid(self, value):
        assert is_duration(value) is False


class TestCron:
    """Test crontab predicate."""

    @pytest.mark.parametrize("value", ["0 3 * * *", "*/15 * * * 1-5", "0 0 3 * * *"])
    def test_valid(self, value):
        assert is_cron(value) is True

    def test_six_fields_require_zero_seconds(self):
        """Test a non-zero seconds field is rejected."""
        assert is_cron("30 0 3 * * *") is False

    @pytest.mark.parametrize("value", ["not a cron", "61 * * * *", "", None])
    def test_invalid(self, value):
        assert is_cron(value) is False


class TestValidateConfig:
    """Test validation results."""

    def test_success(self):
        """Test a valid config returns coerced output and no errors."""
        result = validate_config(ScheduleSchema, {"enabled": True, "schedule": "0 3 * * *"})

        assert result.success
        assert result.errors == {}
        assert result.output["schedule"] == "0 3 * * *"
        assert result.output["window"] is None

    def test_enabled_required(self):
        """Test the base schema requires a boolean enabled flag."""
        result = validate_config(AddonSchema, {})

        assert not result.success
        assert "enabled" in result.errors

    def test_extra_keys_allowed_by_base_schema(self):
        """Test the base schema passes unknown keys through."""
        result = validate_config(AddonSchema, {"enabled": False, "replicas": 3})

        assert result.success
        assert result.output["replicas"] == 3

    def test_errors_keyed_by_field(self):
        """Test invalid cron and duration values are reported per field."""
        result = validate_config(
            ScheduleSchema, {"enabled": True, "schedule": "whenever", "window": "later"}
        )

        assert not result.success
        assert result.output is None
        assert "is not a valid crontab" in result.errors["schedule"][0]
        assert "is not valid duration" in result.errors["window"][0]

    def test_none_config_is_empty(self):
        result = validate_config(AddonSchema, None)
        assert list(result.errors) == ["enabled"]

    def test_messages(self):
        result = ValidationResult(errors={"period": ["is not valid duration"]})
        assert result.messages() == ["period is not valid duration"]


class TestOpenConfig:
    """Test attribute-style config access."""

    def test_attribute_and_item_access(self):
        config = OpenConfig({"schedule": "0 3 * * *", "drain": {"timeout": "5m"}})

        assert config.schedule == "0 3 * * *"
        assert config["schedule"] == "0 3 * * *"
        assert config.drain.timeout == "5m"
        assert isinstance(config.drain, OpenConfig)

    def test_lists_are_wrapped(self):
        config = OpenConfig({"nodes": [{"name": "a"}, "b"]})

        assert config.nodes[0].name == "a"
        assert config.nodes[1] == "b"

    def test_unknown_key_raises(self):
        """Test missing keys raise instead of returning None."""
        config = OpenConfig({"schedule": "0 3 * * *"})

        with pytest.raises(AttributeError, match="window"):
            config.window
        with pytest.raises(KeyError):
            config["window"]

    def test_mapping_protocol(self):
        config = OpenConfig({"a": 1, "b": 2})

        assert len(config) == 2
        assert set(config) == {"a", "b"}
        assert config.get("c", 3) == 3
        assert config.to_dict() == {"a": 1, "b": 2}
