from dataclasses import dataclass

from labexplain.config.settings import Settings

CHAT_PATH_MARKER = "/text/chat"
REQUEST_STYLES = ("", "chat", "completion")


@dataclass(frozen=True)
class WatsonxEndpoint:
    """Where and how to reach a watsonx deployment."""

    prediction_url: str = ""
    base_url: str = ""
    deployment_id: str = ""
    api_key: str = ""
    request_style: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "WatsonxEndpoint":
        return cls(
            prediction_url=settings.watson_prediction_url.strip(),
            base_url=settings.watson_url.strip(),
            deployment_id=settings.watson_deployment_id.strip(),
            api_key=settings.watson_apikey.strip(),
            request_style=settings.watson_request_style.strip().lower(),
        )

    @property
    def is_configured(self) -> bool:
        """A full prediction URL, or base URL + deployment id + API key."""
        if self.prediction_url:
            return True
        return bool(self.base_url and self.deployment_id and self.api_key)

    @property
    def url(self) -> str:
        if self.prediction_url:
            return self.prediction_url
        return f"{self.base_url.rstrip('/')}/v1/deployments/{self.deployment_id}/predictions"

    @property
    def is_chat_capable(self) -> bool:
        return CHAT_PATH_MARKER in self.url or self.request_style == "chat"

    @property
    def primary_shape(self) -> str:
        if self.request_style == "completion":
            return "completion"
        return "chat" if self.is_chat_capable else "completion"
