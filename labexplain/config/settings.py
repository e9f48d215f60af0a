from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    reference_ranges_path: Path | None = None

    inference_provider: str = "watsonx"
    analysis_deadline_seconds: float = 60.0

    watson_prediction_url: str = ""
    watson_url: str = ""
    watson_deployment_id: str = ""
    watson_apikey: str = ""
    watson_auth_flow: str = "apikey"
    watson_iam_url: str = "https://iam.cloud.ibm.com/identity/token"
    watson_request_style: str = ""
    watson_api_version: str = ""
    watson_timeout_seconds: int = 30

    openai_api_key: str = ""
    openai_model_name: str = ""
    openai_base_url: str = ""
    openai_timeout_seconds: int = 30
    openai_temperature: float = 0.2
