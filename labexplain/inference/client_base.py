from abc import ABC, abstractmethod


class BaseInferenceClient(ABC):
    """Contract for provider-specific inference transports."""

    @abstractmethod
    def send(
        self,
        payload: dict[str, object],
        *,
        timeout_seconds: float | None = None,
    ) -> object:
        """Post *payload* and return the decoded JSON response body.

        Args:
            payload: Request body produced by a RequestShape.
            timeout_seconds: Per-call timeout overriding the client default.

        Raises:
            InferenceNetworkError: on transport failures and rejected requests.
            InferenceError: on any other failure.
        """

    def close(self) -> None:
        """Release pooled connections, if any."""
