"""Error types raised by the pricing engine and its collaborators"""


class ValidationError(Exception):
    """Input contract violation. Raised synchronously, never retried."""

    def __init__(self, message, field=None, errors=None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.errors = list(errors or [])

    def to_dict(self):
        payload = {"error": "validation_error", "message": self.message}
        if self.field:
            payload["field"] = self.field
        if self.errors:
            payload["errors"] = [
                e.to_dict() if isinstance(e, ValidationError) else {"message": str(e)}
                for e in self.errors
            ]
        return payload


class ConfigurationError(Exception):
    """Missing business configuration, e.g. no sales-tax rate for a state"""


class RegistryLookupError(Exception):
    """FMCSA registry lookup failed"""

    def __init__(self, message, status_code=502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
