from typing import ClassVar

import httpx

from labexplain.config.settings import Settings
from labexplain.inference.auth import TokenCache, build_auth
from labexplain.inference.client_base import BaseInferenceClient
from labexplain.inference.endpoint import REQUEST_STYLES, WatsonxEndpoint
from labexplain.inference.example_client_adapter import ExampleClientAdapter
from labexplain.inference.exceptions import InferenceConfigurationError
from labexplain.inference.gateway import InferenceGateway
from labexplain.inference.openai_client_adapter import OpenAIClientAdapter
from labexplain.inference.shapes import CHAT, build_ladder
from labexplain.inference.watsonx_client_adapter import WatsonxClientAdapter
from labexplain.logging.logger import Log


class GatewayFactory:
    """Creates the inference gateway for the configured provider."""

    PROVIDERS: ClassVar[tuple[str, ...]] = ("watsonx", "openai", "example", "none")

    @classmethod
    def create(
        cls,
        settings: Settings,
        *,
        token_cache: TokenCache | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> InferenceGateway:
        """Create a gateway from application settings.

        Missing endpoint or credentials are not an error: the gateway is
        built unconfigured and answers with the local fallback.

        Raises:
            ValueError: for an unknown provider or request style.
        """
        provider = settings.inference_provider.strip().lower()
        if provider not in cls.PROVIDERS:
            raise ValueError(
                f"Unknown inference provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
            )
        deadline = settings.analysis_deadline_seconds or None

        if provider == "example":
            return InferenceGateway(
                client=ExampleClientAdapter(),
                ladder=[CHAT],
                deadline_seconds=deadline,
            )
        if provider == "openai":
            return InferenceGateway(
                client=cls._openai_client(settings),
                ladder=build_ladder("chat", chat_capable=True),
                call_timeout_seconds=settings.openai_timeout_seconds,
                deadline_seconds=deadline,
            )
        if provider == "none":
            return InferenceGateway(client=None)

        endpoint = WatsonxEndpoint.from_settings(settings)
        if endpoint.request_style not in REQUEST_STYLES:
            raise ValueError(
                f"Unknown request style '{endpoint.request_style}'. "
                f"Choose from: {[s for s in REQUEST_STYLES if s]}"
            )
        return InferenceGateway(
            client=cls._watsonx_client(endpoint, settings, token_cache, transport),
            ladder=build_ladder(endpoint.primary_shape, endpoint.is_chat_capable),
            call_timeout_seconds=settings.watson_timeout_seconds,
            deadline_seconds=deadline,
        )

    @classmethod
    def _watsonx_client(
        cls,
        endpoint: WatsonxEndpoint,
        settings: Settings,
        token_cache: TokenCache | None,
        transport: httpx.BaseTransport | None,
    ) -> BaseInferenceClient | None:
        if not endpoint.is_configured:
            Log.info(
                "watsonx not configured: set WATSON_PREDICTION_URL or "
                "WATSON_URL, WATSON_DEPLOYMENT_ID and WATSON_APIKEY"
            )
            return None
        try:
            auth = build_auth(
                flow=settings.watson_auth_flow,
                api_key=endpoint.api_key,
                iam_url=settings.watson_iam_url,
                timeout_seconds=settings.watson_timeout_seconds,
                token_cache=token_cache,
                transport=transport,
            )
        except InferenceConfigurationError as exc:
            Log.warning(f"watsonx credentials unusable, using local fallback: {exc}")
            return None
        return WatsonxClientAdapter(
            url=endpoint.url,
            auth=auth,
            timeout_seconds=settings.watson_timeout_seconds,
            api_version=settings.watson_api_version.strip(),
            transport=transport,
        )

    @classmethod
    def _openai_client(cls, settings: Settings) -> BaseInferenceClient | None:
        api_key = settings.openai_api_key.strip()
        model = settings.openai_model_name.strip()
        if not api_key or not model:
            Log.info("OpenAI provider not configured: set OPENAI_API_KEY and OPENAI_MODEL_NAME")
            return None
        return OpenAIClientAdapter(
            api_key=api_key,
            model=model,
            timeout_seconds=settings.openai_timeout_seconds,
            base_url=settings.openai_base_url.strip() or None,
            temperature=settings.openai_temperature,
        )
