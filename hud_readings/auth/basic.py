"""
HTTP basic authentication helpers.

A single username/password pair guards the whole API. Comparison is done with
``secrets.compare_digest`` so the time taken does not depend on how many
leading characters of the supplied value were correct.

Usage:
    from hud_readings.auth.basic import BasicCredentials, credentials_match

    expected = BasicCredentials("hud", "s3cret")
    supplied = parse_basic_authorization(request.headers.get("Authorization"))
    if not credentials_match(expected, supplied):
        ... # reject with 401
"""
import base64
import binascii
import secrets
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class BasicCredentials:
    username: str
    password: str

    def __repr__(self) -> str:
        return f"BasicCredentials(username={self.username!r}, password='***')"


def parse_basic_authorization(header: Optional[str]) -> Optional[BasicCredentials]:
    """
    Decode an ``Authorization: Basic`` header value.

    Args:
        header: Raw header value, possibly None

    Returns:
        Optional[BasicCredentials]: Decoded credentials, or None if the header is
        missing, uses another scheme or is not valid base64 ``user:password``
    """
    if not header:
        return None
    scheme, _, encoded = header.partition(" ")
    if scheme.lower() != "basic" or not encoded:
        return None
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return BasicCredentials(username=username, password=password)


def credentials_match(expected: Optional[BasicCredentials], supplied: Optional[BasicCredentials]) -> bool:
    """
    Check supplied credentials against the configured pair.

    With no configured pair every request is allowed. Otherwise both the
    username and the password must match exactly.
    """
    if expected is None:
        return True
    if supplied is None:
        return False
    username_ok = secrets.compare_digest(
        expected.username.encode("utf-8"), supplied.username.encode("utf-8")
    )
    password_ok = secrets.compare_digest(
        expected.password.encode("utf-8"), supplied.password.encode("utf-8")
    )
    return username_ok and password_ok
