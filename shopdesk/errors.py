"""Domain errors translated to JSON responses at the API boundary."""


class ShopDeskError(Exception):
    """Base class for errors that map to a {error, message} response."""

    status_code = 500
    error = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.error
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "error": self.error,
            "message": self.message,
            "kind": type(self).__name__,
        }


class NotAuthenticated(ShopDeskError):
    status_code = 401
    error = "Not authenticated"


class ShopContextMissing(ShopDeskError):
    status_code = 400
    error = "Shop context required"


class ShopAccessDenied(ShopDeskError):
    status_code = 403
    error = "Access denied"


class PermissionDenied(ShopDeskError):
    status_code = 403
    error = "Permission denied"


# ── Insights ─────────────────────────────────────────────

class InsightsError(ShopDeskError):
    """Any failure while producing an insight bundle. Nothing is cached."""

    error = "Failed to generate insights"


class DataUnavailable(InsightsError):
    status_code = 404
    error = "Shop data unavailable"


class GenerationFailure(InsightsError):
    status_code = 502
    error = "Failed to generate insights"


class ParseFailure(InsightsError):
    status_code = 502
    error = "Could not parse model response"
