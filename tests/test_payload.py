import pytest

from sensor_logger.errors import MalformedPayload
from sensor_logger.mqtt.payload import parse_payload


class TestParsePayload:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (b"7.20", 7.2),
            (b"-3", -3.0),
            (b".5", 0.5),
            (b"1e3", 1000.0),
            (b"+12.75", 12.75),
            (b" 21.5\n", 21.5),
        ],
    )
    def test_decimal_numbers(self, raw, expected):
        assert parse_payload(raw) == pytest.approx(expected)

    @pytest.mark.parametrize(
        "raw",
        [b"abc", b"", b"   ", b"nan", b"inf", b"1_000", b"7,20", b'{"value": 7.2}', b"0x10", b"\xff\xfe"],
    )
    def test_rejects_non_decimal(self, raw):
        with pytest.raises(MalformedPayload):
            parse_payload(raw)

    def test_rejects_values_outside_float32(self):
        with pytest.raises(MalformedPayload) as exc:
            parse_payload(b"1e39")
        assert "32-bit" in exc.value.reason

    @pytest.mark.parametrize("text", ["٧.٢", "７", "१२"])
    def test_rejects_non_ascii_digits(self, text):
        with pytest.raises(MalformedPayload):
            parse_payload(text.encode("utf-8"))

    def test_value_is_not_narrowed_to_float32(self):
        # Se guarda el double parseado; 7.20 no pasa a 7.1999998...
        assert parse_payload(b"7.20") == 7.2
