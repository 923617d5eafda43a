"""
ShortlinkManager module for Shorty.

Responsibilities:
    - Validate short keys and target URLs before any store call
    - Run exactly one storage operation per request
    - Log mutations and rejections
    - Turn a missing redirect into the "no redirect for <short>" error

Design notes:
    - Storage is an injected dependency (any BaseStorage), shared by all
      requests; the manager itself holds no mutable state.
    - Validation errors are raised as `ValidationError`; storage errors pass
      through untouched so the API maps each kind to one status code.
    - No existence pre-checks: uniqueness is left to the store's constraint.
"""

import logging
import re
from typing import List, Optional
from urllib.parse import urlparse

from ..errors import NotFoundError, ValidationError
from ..models import Shortlink, ShortlinkCreate, ShortlinkUpdate
from ..storage.base import BaseStorage

SHORT_PATTERN = re.compile(r"^[a-zA-Z0-9\-_]+$")
INVALID_SHORT_MESSAGE = "invalid short does not match ^[a-zA-Z0-9\\-_]+$"
INVALID_URL_MESSAGE = "invalid redirect url"

logger = logging.getLogger(__name__)


def validate_short(short: str) -> None:
    """
    Validate that a short key is one or more of [A-Za-z0-9_-].

    Raises:
        ValidationError: Empty keys, non-ASCII letters, spaces, dots, slashes, ...
    """
    if not isinstance(short, str) or not SHORT_PATTERN.fullmatch(short):
        logger.info("Checked invalid short: %r", short)
        raise ValidationError(INVALID_SHORT_MESSAGE)


def validate_url(url: str) -> None:
    """
    Validate that a URL is absolute, with a non-empty scheme and host.

    Rejects relative paths, scheme-less strings, whitespace or control
    characters anywhere in the string, and URIs the parser cannot take
    apart (bad port, unbalanced IPv6 brackets).

    Raises:
        ValidationError: If the URL is malformed.
    """
    if not isinstance(url, str) or not url or any(ch.isspace() or ord(ch) < 0x20 or ord(ch) == 0x7F for ch in url):
        logger.info("Checked invalid url: %r", url)
        raise ValidationError(INVALID_URL_MESSAGE)
    try:
        parsed = urlparse(url)
        parsed.port  # raises ValueError on a non-numeric / out of range port
    except ValueError:
        logger.info("Checked invalid url: %r", url)
        raise ValidationError(INVALID_URL_MESSAGE) from None
    if not parsed.scheme or not parsed.hostname:
        logger.info("Checked invalid url: %r", url)
        raise ValidationError(INVALID_URL_MESSAGE)


class ShortlinkManager:
    """
    Coordinates validation and storage calls for shortlinks.
    """

    def __init__(self, storage: BaseStorage, logger: Optional[logging.Logger] = None):
        """
        Initialize ShortlinkManager with a storage backend.

        Args:
            storage (BaseStorage): Backend storage instance, shared across requests.
            logger (Optional[logging.Logger]): Logger to use (module logger by default).
        """
        self.storage = storage
        self.logger = logger or logging.getLogger(__name__)

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------
    def list_shortlinks(self) -> List[Shortlink]:
        return self.storage.list_shortlinks()

    def get_shortlink(self, short: str) -> Shortlink:
        validate_short(short)
        return self.storage.get_shortlink(short)

    def create_shortlink(self, payload: ShortlinkCreate) -> Shortlink:
        """
        Create a shortlink from a validated payload.

        Raises:
            ValidationError: On invalid short or URL.
            DuplicateError: If the short key is taken.
        """
        validate_short(payload.short)
        validate_url(payload.long)
        shortlink = self.storage.create_shortlink(payload.short, payload.long, payload.description)
        self.logger.info("Created shortlink: %s -> %s", shortlink.short, shortlink.long)
        return shortlink

    def update_shortlink(self, short: str, payload: ShortlinkUpdate) -> Shortlink:
        """
        Replace short/long/description of an existing shortlink.

        Both the current key and the new key are validated, as is the URL.

        Raises:
            ValidationError: On invalid old short, new short or URL.
            NotFoundError: If `short` does not exist.
            DuplicateError: If the new short belongs to another shortlink.
        """
        validate_short(short)
        validate_short(payload.short)
        validate_url(payload.long)
        shortlink = self.storage.update_shortlink(short, payload.short, payload.long, payload.description)
        if shortlink.short != short:
            self.logger.info("Renamed shortlink %s -> %s", short, shortlink.short)
        self.logger.info("Updated shortlink: %s -> %s", shortlink.short, shortlink.long)
        return shortlink

    def delete_shortlink(self, short: str) -> int:
        """Delete a shortlink; returns 0 when it was already absent."""
        validate_short(short)
        deleted = self.storage.delete_shortlink(short)
        if deleted:
            self.logger.info("Deleted shortlink: %s", short)
        return deleted

    def resolve_redirect(self, short: str) -> str:
        """
        Count one access and return the target URL.

        Raises:
            ValidationError: On invalid short.
            NotFoundError: "no redirect for <short>" if it does not exist.
        """
        validate_short(short)
        try:
            return self.storage.resolve_redirect(short)
        except NotFoundError as exc:
            raise NotFoundError(f"no redirect for {short}") from exc

    def is_free(self, short: str) -> bool:
        validate_short(short)
        return self.storage.is_free(short)
