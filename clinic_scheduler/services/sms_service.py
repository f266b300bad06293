"""Templated SMS delivery through the Twilio REST API."""

import re
from pathlib import Path

import httpx
import structlog

from clinic_scheduler.config import Settings, settings
from clinic_scheduler.core.contact import parse_phone
from clinic_scheduler.schemas.sms import SmsResult

logger = structlog.get_logger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates" / "sms"
PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")

# Twilio error codes for numbers that can never receive the message
INVALID_NUMBER_CODES = {21211, 21214, 21614}
UNVERIFIED_NUMBER_CODES = {21608}


class SmsNotifier:
    """
    Best-effort SMS sender.

    Expected failures (missing template, development mode, bad number,
    unverified trial number, API rejection) come back as an ``SmsResult``.
    Only transport errors from httpx propagate.
    """

    def __init__(
        self,
        config: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        templates_dir: Path = TEMPLATES_DIR,
    ):
        self.config = config or settings
        self.client = client
        self.templates_dir = templates_dir

    def render(self, template_id: str, fields: dict[str, str]) -> str | None:
        """Load a template and substitute ``{{name}}`` placeholders; None if missing."""
        path = self.templates_dir / f"{template_id}.txt"
        if not path.is_file():
            return None
        body = path.read_text(encoding="utf-8").strip()
        return PLACEHOLDER.sub(lambda m: str(fields.get(m.group(1), m.group(0))), body)

    async def send(
        self,
        destination: str,
        template_id: str,
        fields: dict[str, str],
    ) -> SmsResult:
        """
        Send a templated SMS.

        Args:
            destination: Mobile number in 09XXXXXXXXX or +639XXXXXXXXX form
            template_id: Template file name without extension
            fields: Placeholder substitutions

        Returns:
            Structured outcome of the attempt
        """
        message = self.render(template_id, fields)
        if message is None:
            logger.warning("sms_template_missing", template=template_id)
            return SmsResult(
                success=False,
                reason="no_template",
                message=f"No SMS template found: {template_id}",
                template=template_id,
            )

        if not self.config.sms_dispatch_enabled:
            logger.info(
                "sms_dispatch_skipped",
                to=destination,
                template=template_id,
                body=message,
                environment=self.config.environment,
            )
            return SmsResult(
                success=True,
                reason="development_skip",
                message="SMS skipped outside production",
                template=template_id,
            )

        if not (self.config.twilio_account_sid and self.config.twilio_auth_token):
            logger.error("sms_not_configured", template=template_id)
            return SmsResult(
                success=False,
                reason="configuration_error",
                message="Twilio credentials are not configured",
                template=template_id,
            )

        try:
            to_number = parse_phone(destination).e164
        except ValueError as e:
            logger.warning("sms_invalid_number", to=destination, error=str(e))
            return SmsResult(
                success=False, reason="invalid_number", message=str(e), template=template_id
            )

        response = await self._post(to_number, message)

        if response.status_code in (200, 201):
            message_id = response.json().get("sid")
            logger.info("sms_sent", to=to_number, template=template_id, message_id=message_id)
            return SmsResult(
                success=True,
                reason="sent",
                message_id=message_id,
                template=template_id,
            )

        return self._failure(response, to_number, template_id)

    async def _post(self, to_number: str, body: str) -> httpx.Response:
        sid = self.config.twilio_account_sid
        url = f"{self.config.twilio_api_url}/Accounts/{sid}/Messages.json"
        data = {"To": to_number, "From": self.config.twilio_from_number, "Body": body}
        auth = (sid, self.config.twilio_auth_token)

        if self.client is not None:
            return await self.client.post(
                url, data=data, auth=auth, timeout=self.config.sms_timeout_seconds
            )
        async with httpx.AsyncClient() as client:
            return await client.post(
                url, data=data, auth=auth, timeout=self.config.sms_timeout_seconds
            )

    def _failure(self, response: httpx.Response, to_number: str, template_id: str) -> SmsResult:
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        code = payload.get("code")
        detail = payload.get("message") or response.text

        if code in INVALID_NUMBER_CODES:
            reason = "invalid_number"
        elif code in UNVERIFIED_NUMBER_CODES:
            reason = "unverified_number"
        else:
            reason = "api_error"

        logger.warning(
            "sms_failed",
            to=to_number,
            template=template_id,
            reason=reason,
            status_code=response.status_code,
            error_code=code,
            error=detail,
        )
        return SmsResult(success=False, reason=reason, message=detail, template=template_id)


_notifier = SmsNotifier()


def get_sms_notifier() -> SmsNotifier:
    """Dependency returning the process-wide SMS notifier."""
    return _notifier
