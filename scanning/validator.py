import logging
import re
from typing import Optional

from config.settings import Settings, get_settings
from .errors import MalformedCodeError, InvalidTokenError

log = logging.getLogger("rewards.scan")

UUID_V4_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


class CodeValidator:
    """Turns scanned QR text into a canonical (lowercase) product token.

    Only two URL shapes are accepted, the long warranty domain and its short
    link, each carrying the token as the final path segment after the code
    prefix. No lookups happen here.
    """

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        domains = "|".join(re.escape(d) for d in (settings.long_domain, settings.short_domain))
        prefix = re.escape(settings.code_path_prefix)
        self.expected_format = f"https://{settings.long_domain}{settings.code_path_prefix}<UUID>"
        self._url_pattern = re.compile(rf"^https://(?:{domains}){prefix}([^/?#\s]+)/?$", re.IGNORECASE)

    def validate(self, raw_code: str) -> str:
        text = (raw_code or "").strip()
        match = self._url_pattern.match(text)
        if not match:
            log.debug("Rejected malformed code %r", text[:200])
            raise MalformedCodeError(
                "Invalid QR code format. Please scan a valid warranty code.",
                details={"expectedFormat": self.expected_format},
            )

        token = match.group(1)
        if not UUID_V4_PATTERN.match(token):
            log.debug("Rejected invalid token %r", token)
            raise InvalidTokenError(
                "Invalid product code UUID. Please scan a valid warranty code.",
                details={"detectedToken": token},
            )
        return token.lower()
