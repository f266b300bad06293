"""SMS dispatch result schema."""

from datetime import date
from typing import Literal

from pydantic import BaseModel

SmsReason = Literal[
    "sent",
    "no_template",
    "development_skip",
    "configuration_error",
    "invalid_number",
    "unverified_number",
    "api_error",
    "unexpected_error",
]


class SmsResult(BaseModel):
    """Outcome of one SMS attempt. Expected failures are reported here, not raised."""

    success: bool
    reason: SmsReason
    message: str | None = None
    message_id: str | None = None
    template: str | None = None


class ReminderRunSummary(BaseModel):
    """Counts from one pass over a day's scheduled appointments."""

    date: date
    total: int
    sent: int
    failed: int
