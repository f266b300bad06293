"""Tests for templated SMS delivery."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from clinic_scheduler.config import settings
from clinic_scheduler.services.sms_service import SmsNotifier

FIELDS = {
    "patientName": "Maria Santos",
    "appointmentNumber": "0007",
    "preferredDate": "March 4, 2026",
    "preferredTime": "9:00 AM",
}


@pytest.fixture
def production_settings():
    return settings.model_copy(
        update={
            "environment": "production",
            "twilio_account_sid": "AC123",
            "twilio_auth_token": "secret",
            "twilio_from_number": "+15005550006",
        }
    )


def _client(status_code: int, payload: dict) -> MagicMock:
    client = MagicMock(spec=httpx.AsyncClient)
    client.post = AsyncMock(
        return_value=httpx.Response(
            status_code,
            json=payload,
            request=httpx.Request("POST", "https://api.twilio.com"),
        )
    )
    return client


def test_render_substitutes_placeholders() -> None:
    body = SmsNotifier().render("scheduled", FIELDS)

    assert "Maria Santos" in body
    assert "#0007" in body
    assert "March 4, 2026 at 9:00 AM" in body
    assert "{{" not in body


def test_render_reminder() -> None:
    body = SmsNotifier().render("reminder", {**FIELDS, "reasonForVisit": "Vaccination"})

    assert "reminder" in body
    assert "#0007 tomorrow, March 4, 2026 at 9:00 AM" in body
    assert "for Vaccination" in body
    assert "{{" not in body


def test_render_missing_template() -> None:
    assert SmsNotifier().render("follow_up", FIELDS) is None


def test_render_leaves_unknown_placeholders(tmp_path: Path) -> None:
    (tmp_path / "custom.txt").write_text("Hello {{patientName}}, code {{code}}")

    body = SmsNotifier(templates_dir=tmp_path).render("custom", FIELDS)

    assert body == "Hello Maria Santos, code {{code}}"


@pytest.mark.asyncio
async def test_missing_template_reported() -> None:
    result = await SmsNotifier().send("09171234567", "follow_up", FIELDS)

    assert result.success is False
    assert result.reason == "no_template"


@pytest.mark.asyncio
async def test_development_skip() -> None:
    client = _client(201, {"sid": "SM1"})
    config = settings.model_copy(update={"environment": "development", "sms_enabled": False})

    result = await SmsNotifier(config=config, client=client).send(
        "09171234567", "scheduled", FIELDS
    )

    assert result.success is True
    assert result.reason == "development_skip"
    client.post.assert_not_called()


@pytest.mark.asyncio
async def test_missing_credentials(production_settings) -> None:
    config = production_settings.model_copy(update={"twilio_auth_token": ""})

    result = await SmsNotifier(config=config).send("09171234567", "scheduled", FIELDS)

    assert result.success is False
    assert result.reason == "configuration_error"


@pytest.mark.asyncio
async def test_invalid_destination(production_settings) -> None:
    client = _client(201, {"sid": "SM1"})

    result = await SmsNotifier(config=production_settings, client=client).send(
        "12345", "scheduled", FIELDS
    )

    assert result.reason == "invalid_number"
    client.post.assert_not_called()


@pytest.mark.asyncio
async def test_send_success(production_settings) -> None:
    client = _client(201, {"sid": "SM123", "status": "queued"})

    result = await SmsNotifier(config=production_settings, client=client).send(
        "09171234567", "completed", FIELDS
    )

    assert result.success is True
    assert result.reason == "sent"
    assert result.message_id == "SM123"
    assert result.template == "completed"

    args, kwargs = client.post.call_args
    assert args[0] == "https://api.twilio.com/2010-04-01/Accounts/AC123/Messages.json"
    assert kwargs["data"]["To"] == "+639171234567"
    assert kwargs["data"]["From"] == "+15005550006"
    assert "Maria Santos" in kwargs["data"]["Body"]
    assert kwargs["auth"] == ("AC123", "secret")


@pytest.mark.asyncio
async def test_sms_enabled_outside_production(production_settings) -> None:
    config = production_settings.model_copy(
        update={"environment": "staging", "sms_enabled": True}
    )
    client = _client(201, {"sid": "SM9"})

    result = await SmsNotifier(config=config, client=client).send(
        "+639171234567", "cancelled", FIELDS
    )

    assert result.reason == "sent"
    client.post.assert_awaited_once()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("code", "reason"),
    [(21211, "invalid_number"), (21608, "unverified_number"), (20003, "api_error")],
)
async def test_api_failures(production_settings, code: int, reason: str) -> None:
    client = _client(400, {"code": code, "message": "Twilio says no"})

    result = await SmsNotifier(config=production_settings, client=client).send(
        "09171234567", "rebooked", FIELDS
    )

    assert result.success is False
    assert result.reason == reason
    assert result.message == "Twilio says no"


@pytest.mark.asyncio
async def test_transport_error_propagates(production_settings) -> None:
    client = MagicMock(spec=httpx.AsyncClient)
    client.post = AsyncMock(side_effect=httpx.ConnectTimeout("timed out"))

    with pytest.raises(httpx.TransportError):
        await SmsNotifier(config=production_settings, client=client).send(
            "09171234567", "scheduled", FIELDS
        )
