"""Contact identity value types shared by every entity that stores one."""

import re
from dataclasses import dataclass

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^(09|\+639)\d{9}$")


@dataclass(frozen=True)
class Email:
    """Email address."""

    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Phone:
    """Philippine mobile number in local (09...) or international (+639...) form."""

    value: str

    @property
    def e164(self) -> str:
        """Number in +63 international form, as SMS gateways expect it."""
        if self.value.startswith("09"):
            return "+63" + self.value[1:]
        return self.value

    def __str__(self) -> str:
        return self.value


ContactIdentity = Email | Phone


def parse_contact_identity(raw: str) -> ContactIdentity:
    """
    Parse a value that may be either an email address or a mobile number.

    Raises:
        ValueError: If the value is neither
    """
    value = raw.strip()
    if EMAIL_PATTERN.match(value):
        return Email(value.lower())
    if PHONE_PATTERN.match(value):
        return Phone(value)
    raise ValueError(
        "Must be a valid email address or mobile number (09XXXXXXXXX or +639XXXXXXXXX)"
    )


def parse_phone(raw: str) -> Phone:
    """Parse a mobile number, rejecting email addresses."""
    identity = parse_contact_identity(raw)
    if not isinstance(identity, Phone):
        raise ValueError("Must be a valid mobile number (09XXXXXXXXX or +639XXXXXXXXX)")
    return identity
