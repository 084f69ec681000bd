"""Error taxonomy shared by the services and the HTTP layer.

Every ``ListingError`` carries the HTTP status it maps to; the handlers
registered in ``listing_tracker.main`` turn it into an ``{error, details?}``
JSON body.
"""

from typing import Any


class ListingError(Exception):
    status_code: int = 500

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_content(self) -> dict[str, Any]:
        content: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            content["details"] = self.details
        return content


class InvalidInputError(ListingError):
    """Malformed id, status or body."""

    status_code = 400


class NotFoundError(ListingError):
    status_code = 404


class DuplicateListingError(ListingError):
    """The link is already tracked by another listing."""

    status_code = 409


class StoreError(ListingError):
    """Any other failure reported by the database."""

    status_code = 500


class ConfigurationError(Exception):
    """Required store settings are missing."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__("Missing store configuration: " + ", ".join(self.missing))
