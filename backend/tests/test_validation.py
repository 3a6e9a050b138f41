"""
Unit tests for configuration payload validation and input coercion.
"""
import pytest

from tracking.errors import ValidationError
from tracking.validation import (
    CONFIG_FIELDS,
    coerce_float,
    coerce_int,
    coerce_str,
    validate_config_payload,
)


class TestValidateConfigPayload:
    def test_returns_attribute_names_for_supplied_fields(self):
        values = validate_config_payload({"gpsTimer": "15", "baseUrl": "https://example.com/api"})

        assert values == {"gps_timer": "15", "base_url": "https://example.com/api"}

    def test_integers_are_stored_as_text(self):
        assert validate_config_payload({"stopTimer": 130}) == {"stop_timer": "130"}

    def test_zero_is_a_valid_value(self):
        assert validate_config_payload({"gpsTimer": "0"}) == {"gps_timer": "0"}

    def test_empty_payload_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_config_payload({})

        assert exc_info.value.message == "At least one configuration field must be provided"
        assert exc_info.value.details["validFields"] == list(CONFIG_FIELDS)

    def test_only_null_values_count_as_empty(self):
        with pytest.raises(ValidationError):
            validate_config_payload({"gpsTimer": None})

    def test_unknown_keys_are_listed(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_config_payload({"gpsTimer": "5", "colour": "red", "speedLimit": "3"})

        assert exc_info.value.errors == [
            "Invalid configuration field: colour",
            "Invalid configuration field: speedLimit",
        ]

    @pytest.mark.parametrize("value", ["-1", "abc", "1.5", "", -3, True, 2.5, ["1"], "١٥", "1_000"])
    def test_numeric_fields_require_non_negative_integers(self, value):
        with pytest.raises(ValidationError) as exc_info:
            validate_config_payload({"heartbeatTimer": value})

        assert exc_info.value.errors == ["heartbeatTimer must be a valid non-negative integer"]

    @pytest.mark.parametrize("value", ["not-a-url", "http://", "/relative/path"])
    def test_base_url_must_be_absolute(self, value):
        with pytest.raises(ValidationError) as exc_info:
            validate_config_payload({"baseUrl": value})

        assert exc_info.value.errors == ["baseUrl must be a valid URL"]

    def test_base_url_keeps_caller_spelling(self):
        url = "https://connectlive.commtw.com:446/twconnectlive/TrackingServices.asmx"

        assert validate_config_payload({"baseUrl": url}) == {"base_url": url}

    def test_collects_every_error(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_config_payload({"gpsTimer": "x", "baseUrl": "nope", "bogus": 1})

        assert len(exc_info.value.errors) == 3

    def test_non_object_body_is_rejected(self):
        with pytest.raises(ValidationError):
            validate_config_payload(["gpsTimer", "5"])


class TestCoercion:
    def test_float_accepts_numeric_strings(self):
        assert coerce_float("speed", "12.5") == 12.5

    @pytest.mark.parametrize("value", ["fast", True, "nan", "inf"])
    def test_float_rejects_non_numbers(self, value):
        with pytest.raises(ValueError):
            coerce_float("speed", value)

    def test_missing_values_are_none(self):
        assert coerce_float("speed", None) is None
        assert coerce_int("igStatus", "") is None
        assert coerce_str(None) is None

    def test_int_accepts_integral_floats_and_strings(self):
        assert coerce_int("igStatus", 1.0) == 1
        assert coerce_int("igStatus", " 0 ") == 0

    def test_int_rejects_fractions(self):
        with pytest.raises(ValueError):
            coerce_int("igStatus", 1.5)

    def test_str_renders_numbers(self):
        assert coerce_str(10253) == "10253"

    def test_float_rejects_numbers_beyond_double_range(self):
        with pytest.raises(ValueError) as exc_info:
            coerce_float("latitude", 10 ** 400)

        assert str(exc_info.value) == "latitude must be a finite number"

    @pytest.mark.parametrize("value", ["1_000", "١", "+1", "1 0"])
    def test_int_requires_plain_ascii_digits(self, value):
        with pytest.raises(ValueError):
            coerce_int("igStatus", value)

    def test_int_accepts_negative_strings(self):
        assert coerce_int("igStatus", "-2") == -2
