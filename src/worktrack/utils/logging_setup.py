"""Logging configuration with credential redaction."""

import logging
import re
from typing import Iterable, List, Optional

REDACTION_MARKER = "[REDACTED]"

_AUTH_HEADER_PATTERN = re.compile(
    r"\b(Bearer|OAuth)\s+[^\s,;'\"]+", re.IGNORECASE
)
_AUTH_PARAM_PATTERN = re.compile(
    r"((?:token|api_key|apikey|access_token)=)[^&\s]+", re.IGNORECASE
)


class TokenRedactingFilter(logging.Filter):
    """Masks credentials in log records before they are emitted.

    Removes ``Bearer``/``OAuth`` authorization values, token-like query
    parameters and any explicitly registered secret values.
    """

    def __init__(self, secrets: Iterable[str] = ()):
        super().__init__()
        self._secrets: List[str] = []
        for secret in secrets:
            self.register_secret(secret)

    def register_secret(self, secret: Optional[str]) -> None:
        # Very short values would redact ordinary words
        if secret and len(secret) >= 4 and secret not in self._secrets:
            self._secrets.append(secret)

    def redact(self, text: str) -> str:
        for secret in self._secrets:
            text = text.replace(secret, REDACTION_MARKER)
        text = _AUTH_HEADER_PATTERN.sub(rf"\1 {REDACTION_MARKER}", text)
        return _AUTH_PARAM_PATTERN.sub(rf"\1{REDACTION_MARKER}", text)

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            message = str(record.msg)
        redacted = self.redact(message)
        if redacted != message or record.args:
            record.msg = redacted
            record.args = None
        if record.exc_text:
            record.exc_text = self.redact(record.exc_text)
        return True


def setup_logging(
    level: int = logging.WARNING,
    verbose: bool = False,
    secrets: Iterable[str] = (),
) -> TokenRedactingFilter:
    """Configure root logging for CLI use.

    Args:
        level: Root log level
        verbose: Also show DEBUG output from worktrack and httpx
        secrets: Secret values to mask wherever they appear

    Returns:
        The redacting filter installed on the root handlers
    """
    redacting_filter = TokenRedactingFilter(secrets)

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s:%(name)s:%(message)s"))
        root.addHandler(handler)
    for handler in root.handlers:
        handler.addFilter(redacting_filter)

    root.setLevel(logging.DEBUG if verbose else level)
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    return redacting_filter
