class InferenceError(Exception):
    """Raised when an inference call fails."""


class InferenceNetworkError(InferenceError):
    """Raised when the AI service call fails due to network/infrastructure issues."""


class InferenceConfigurationError(InferenceError):
    """Raised when no usable endpoint or credentials are configured."""


class TokenExchangeError(InferenceNetworkError):
    """Raised when the API key cannot be exchanged for a bearer token."""
