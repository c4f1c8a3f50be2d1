"""
Device fingerprinting.

A fingerprint is a SHA-256 over coarse request signals plus the date the
credential was issued. It is a low-assurance binding ("same device class,
same day of issue"), not a device identity: anyone who can reproduce the
headers and source IP reproduces the fingerprint. It exists to make stolen
tokens harder to use from elsewhere, with no friction for the legitimate
device.
"""

import hashlib
from datetime import date
from typing import Optional

from modules.sessions.models import DeviceInfo

# Order matters: Edge and Opera also advertise Chrome, Chrome advertises Safari.
_BROWSER_MARKERS = (
    ("edg/", "edge"),
    ("opr/", "opera"),
    ("chrome/", "chrome"),
    ("crios/", "chrome"),
    ("firefox/", "firefox"),
    ("fxios/", "firefox"),
    ("safari/", "safari"),
)


def browser_family(user_agent: Optional[str]) -> str:
    """Reduce a User-Agent string to a browser family name."""
    if not user_agent:
        return ""
    ua = user_agent.lower()
    for marker, family in _BROWSER_MARKERS:
        if marker in ua:
            return family
    return "other"


def compute_fingerprint(device: DeviceInfo, issued_on: date) -> str:
    """
    Hash the device signals together with the credential's issue date.

    Args:
        device: Signals of the current request
        issued_on: UTC date the credential being checked was issued

    Returns:
        Hex SHA-256 digest
    """
    parts = [
        device.user_agent or "",
        device.ip or "",
        device.screen_resolution or "",
        device.timezone or "",
        device.language or "",
        device.platform or "",
        browser_family(device.user_agent),
        issued_on.isoformat(),
    ]
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()


def hash_token(raw_token: str) -> str:
    """SHA-256 hex digest of a raw refresh token."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()
