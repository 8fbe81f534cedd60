from __future__ import annotations

from typing import Any


class MythBusterError(Exception):
    code = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InputValidationError(MythBusterError):
    code = "input_invalid"

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class QuotaExceeded(MythBusterError):
    code = "quota_exceeded"

    def __init__(self, feature: str, limit: int):
        super().__init__(
            f"Daily limit of {limit} requests reached for {feature}. "
            "Please try again tomorrow or add your own API key to bypass the shared limit."
        )
        self.feature = feature
        self.limit = limit


class ProviderError(MythBusterError):
    code = "provider_error"

    def __init__(self, status: int, body: str = ""):
        super().__init__(f"AI provider returned status {status}")
        self.status = status
        self.body = (body or "")[:200]


class RateLimited(ProviderError):
    code = "rate_limited"

    def __init__(self, body: str = ""):
        super().__init__(429, body)
        self.message = "The AI provider is rate limiting requests. Please wait a moment and try again."


class ProviderTimeout(MythBusterError):
    code = "provider_timeout"


class NetworkError(MythBusterError):
    code = "network_error"


class ParseError(MythBusterError):
    code = "parse_error"

    def __init__(self, message: str, raw: Any = None):
        super().__init__(message)
        self.raw = raw


class ValidationError(MythBusterError):
    code = "validation_error"

    def __init__(self, reason: str, payload: Any = None):
        super().__init__(f"AI response did not match the expected format: {reason}")
        self.reason = reason
        self.payload = payload


class MissingCredentialError(MythBusterError):
    """No caller key and no house key: a deployment error, not a request error."""

    def __init__(self):
        super().__init__("Missing provider API key on server.")
