"""
Exceptions for openrouter-cli

Every error raised by the library derives from OpenRouterCLIError so the
command layer can report it by category.
"""

from typing import Optional


class OpenRouterCLIError(Exception):
    """Base exception for openrouter-cli"""
    pass


class NoAPIKeyError(OpenRouterCLIError):
    """No API key could be resolved"""

    def __init__(self, message: str = "no API key found"):
        super().__init__(message)


class ConfigError(OpenRouterCLIError):
    """The persisted configuration could not be read or written"""
    pass


class ConfigValidationError(OpenRouterCLIError):
    """A configuration value or denylist entry was rejected"""
    pass


class UnknownConfigKeyError(ConfigValidationError):
    """Configuration key is not recognised"""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"unknown config key: {key}")


class InputError(OpenRouterCLIError):
    """Prompt input could not be read"""
    pass


class NoInputError(InputError):
    """Neither arguments nor piped input supplied a prompt"""

    def __init__(self, message: str = "no input provided: use argument or pipe"):
        super().__init__(message)


class TransportError(OpenRouterCLIError):
    """Request could not be completed or the response body was malformed"""
    pass


class APIError(OpenRouterCLIError):
    """Classified error response (HTTP status >= 400) from the gateway"""

    def __init__(self, status_code: int, message: str, type: Optional[str] = None):
        self.status_code = status_code
        self.message = message
        self.type = type or ""
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.type:
            return f"{self.type}: {self.message}"
        return self.message


class EmptyResponseError(OpenRouterCLIError):
    """Response was structurally valid but carried no content"""
    pass
