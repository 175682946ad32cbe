"""Log hygiene for the relay.

Two kinds of text reach the log sink: error strings from the Mattermost
adapter, which can echo request headers or URLs carrying an access token,
and webhook fields chosen by the caller. The first kind is passed through
a TokenRedactor, the second through sanitize_for_logging.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

# Mattermost usernames: lowercase, start with a letter, 3-22 characters
USERNAME_PATTERN = re.compile(r"^[a-z][a-z0-9._-]{2,21}$")

# Shorter configured values are not matched literally, they would hit ordinary words
MIN_SECRET_LENGTH = 8

# Token shapes that show up in httpx and server error text
TOKEN_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?i)\bbearer\s+[\w.~+/-]{8,}=*"),
    re.compile(r"(?i)\b(?:access_token|token)\s*[=:]\s*[\"']?[\w-]{8,}"),
)

_UNPRINTABLE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]|[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


class TokenRedactor:
    """Replaces Mattermost tokens in text with a placeholder.

    The configured token values are matched literally, so they are hidden
    wherever they appear; anything else shaped like a bearer or
    ``token=`` credential is caught by TOKEN_PATTERNS.

    Example:
        redactor = TokenRedactor([config.mattermost.token, config.mattermost.bot_token])
        safe = redactor.redact(str(error))
    """

    def __init__(
        self,
        secrets: Iterable[str | None] = (),
        placeholder: str = "[REDACTED]",
    ) -> None:
        self.placeholder = placeholder
        known = sorted(
            {s for s in secrets if s and len(s) >= MIN_SECRET_LENGTH}, key=len, reverse=True
        )
        self._known = re.compile("|".join(re.escape(s) for s in known)) if known else None

    def redact(self, text: str) -> str:
        """Return ``text`` with every token replaced by the placeholder."""
        if not text:
            return text
        if self._known is not None:
            text = self._known.sub(self.placeholder, text)
        for pattern in TOKEN_PATTERNS:
            text = pattern.sub(self.placeholder, text)
        return text


def validate_username(username: str) -> bool:
    """Return True if ``username`` is acceptable as a Mattermost username."""
    return bool(username) and USERNAME_PATTERN.match(username) is not None


def sanitize_for_logging(text: str) -> str:
    """Strip terminal escape sequences and control characters from caller text.

    Newlines, tabs and carriage returns are kept.
    """
    if not text:
        return text
    return _UNPRINTABLE.sub("", text)


def mask_token(value: str | None) -> str:
    """Show only the ends of a token, for confirming which one is configured."""
    if not value:
        return ""
    if len(value) > 8:
        return f"{value[:4]}...{value[-4:]}"
    return "***"
