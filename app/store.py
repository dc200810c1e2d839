"""
Paste store: validates new pastes, generates ids and serves pastes through
the backend's atomic check-and-increment.

The store never reads the clock; every operation takes ``now_ms`` from the
caller.
"""
import logging
import secrets
import string
from typing import Any, Optional

from app.config import settings
from app.database import PasteBackend, create_backend
from app.exceptions import (
    BackendUnavailable,
    DuplicatePasteId,
    PasteAccessError,
    PasteValidationError,
)
from app.models import FetchedPaste, Paste

logger = logging.getLogger(__name__)

ID_ALPHABET = string.ascii_letters + string.digits + "-_"
ID_LENGTH = 10
ID_GENERATION_ATTEMPTS = 5
# 9999-12-31T23:59:59.999Z, the last instant an ISO 8601 timestamp can show
MAX_TIMESTAMP_MS = 253_402_300_799_999


def generate_paste_id(length: int = ID_LENGTH) -> str:
    """Random URL-safe id with 6 bits of entropy per character."""
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(length))


def _validate_content(content: Any) -> str:
    if not isinstance(content, str) or not content.strip():
        raise PasteValidationError("content")
    return content


def _validate_positive_int(value: Any, field: str) -> Optional[int]:
    """
    Coerce an optional positive integer.

    None and "" (an empty form field) mean the value was not given. Integral
    floats and decimal strings are accepted; booleans are not.
    """
    if value is None or value == "":
        return None

    if isinstance(value, bool):
        raise PasteValidationError(field)
    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str):
        try:
            number = int(value.strip())
        except ValueError:
            raise PasteValidationError(field) from None
    else:
        raise PasteValidationError(field)

    if number < 1:
        raise PasteValidationError(field)
    return number


class PasteStore:
    """Creates and serves pastes on top of a storage backend."""

    def __init__(self, backend: PasteBackend, id_generator=generate_paste_id):
        self.backend = backend
        self.id_generator = id_generator

    def create(
        self,
        content: Any,
        ttl_seconds: Any = None,
        max_views: Any = None,
        *,
        now_ms: int,
    ) -> Paste:
        """
        Validate and store a new paste.

        Args:
            content: Text content, must be non-blank
            ttl_seconds: Optional positive lifetime in seconds
            max_views: Optional positive view limit
            now_ms: Creation time in milliseconds since the epoch

        Returns:
            The stored paste

        Raises:
            PasteValidationError: If any input is invalid (nothing is stored)
            BackendUnavailable: If storage fails or no free id was found
        """
        content = _validate_content(content)
        ttl_seconds = _validate_positive_int(ttl_seconds, "ttl_seconds")
        if ttl_seconds is not None and now_ms + ttl_seconds * 1000 > MAX_TIMESTAMP_MS:
            raise PasteValidationError("ttl_seconds")
        max_views = _validate_positive_int(max_views, "max_views")

        expires_at = now_ms + ttl_seconds * 1000 if ttl_seconds is not None else None

        for _ in range(ID_GENERATION_ATTEMPTS):
            paste = Paste(
                id=self.id_generator(),
                content=content,
                created_at=now_ms,
                expires_at=expires_at,
                max_views=max_views,
            )
            try:
                self.backend.put(paste)
            except DuplicatePasteId:
                logger.warning(f"Generated paste id {paste.id} already in use, retrying")
                continue
            logger.info(f"Paste {paste.id} saved successfully")
            return paste

        raise BackendUnavailable("Could not allocate a unique paste id")

    def fetch(self, paste_id: str, now_ms: int) -> FetchedPaste:
        """
        Serve a paste and count the view.

        Raises:
            PasteNotFound, PasteExpired, PasteExhausted: If it cannot be served
            BackendUnavailable: If storage fails
        """
        try:
            paste = self.backend.consume(paste_id, now_ms)
        except PasteAccessError as e:
            logger.warning(f"Paste {paste_id} unavailable: {e.message}")
            raise

        logger.info(f"View counted for paste {paste_id} ({paste.views} total)")
        return FetchedPaste(
            content=paste.content,
            remaining_views=paste.remaining_views,
            expires_at=paste.expires_at,
        )

    def health(self) -> bool:
        """Check if the storage backend is reachable."""
        try:
            return self.backend.ping()
        except BackendUnavailable as e:
            logger.error(f"Health check failed: {e}")
        return False


_store: Optional[PasteStore] = None


def get_store() -> PasteStore:
    """Return the process-wide store, creating its backend on first use."""
    global _store
    if _store is None:
        _store = PasteStore(create_backend(settings))
    return _store
