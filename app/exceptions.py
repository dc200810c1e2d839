"""Exceptions raised by the paste store and its storage backends.

Access errors share one base class so the HTTP layer can map all of them
to 404 while still rendering the specific reason.
"""


class PasteError(Exception):
    """Base exception for all paste errors."""
    message = "Paste error"

    def __init__(self, message=None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class PasteValidationError(PasteError):
    """Create input was rejected before anything was stored."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Invalid {field}")


class PasteAccessError(PasteError):
    """The paste cannot be served."""
    pass


class PasteNotFound(PasteAccessError):
    """No paste with this id exists."""
    message = "Not found"


class PasteExpired(PasteAccessError):
    """The paste's expiry time has passed."""
    message = "Expired"


class PasteExhausted(PasteAccessError):
    """The paste reached its maximum number of views."""
    message = "View limit exceeded"


class BackendUnavailable(PasteError):
    """The storage backend could not be reached."""
    message = "Storage unavailable"


class DuplicatePasteId(PasteError):
    """A paste with the generated id is already stored."""

    def __init__(self, paste_id: str):
        self.paste_id = paste_id
        super().__init__(f"Paste {paste_id} already exists")
