import pytest

from homelabsetup.errors import ValidationError
from homelabsetup.services.validation import ValidationService


@pytest.mark.parametrize(
    "value",
    ["192.168.1.10", "0.0.0.0", "255.255.255.255", "10.0.0.1", "001.002.003.004"],
)
def test_is_ipv4_accepts_dotted_quads(value):
    assert ValidationService().is_ipv4(value) is True


@pytest.mark.parametrize(
    "value",
    [
        "",
        "256.1.1.1",
        "1.2.3",
        "1.2.3.4.5",
        "1.2.3.4 ",
        "a.b.c.d",
        "1234.1.1.1",
        "192.168.1.-1",
        "١.٢.٣.٤",
    ],
)
def test_is_ipv4_rejects_everything_else(value):
    assert ValidationService().is_ipv4(value) is False


def test_duration_and_port_rules():
    service = ValidationService()

    assert service.is_duration("15d")
    assert service.is_duration("720h")
    assert not service.is_duration("15 days")
    assert not service.is_duration("d15")

    assert service.is_port("3001")
    assert not service.is_port("0")
    assert not service.is_port("65536")
    assert not service.is_port("http")


def test_url_rule_requires_scheme_and_host():
    service = ValidationService()

    assert service.is_url("http://otel-collector:4317")
    assert service.is_url("https://jellyfin.example.com")
    assert not service.is_url("otel-collector:4317")
    assert not service.is_url("http://")


def test_check_reports_empty_values_for_any_key():
    service = ValidationService()

    assert service.check("TZ", "") == "value must not be empty"
    assert service.check("TZ", "   ") == "value must not be empty"
    assert service.check("TZ", "Europe/Berlin") is None


def test_validate_value_raises_with_key():
    service = ValidationService()

    with pytest.raises(ValidationError, match="Invalid value for NTOPNG_HTTP_PORT") as exc_info:
        service.validate_value("NTOPNG_HTTP_PORT", "99999")

    assert exc_info.value.key == "NTOPNG_HTTP_PORT"
    assert "Suggested action:" in str(exc_info.value)
