from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    store_backend: str = "memory"
    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "bol_triage"
    db_username: str = "bol_triage"
    db_password: str = "secret"

    extractor_provider: str = "xtractflow"
    xtractflow_api_url: str = ""
    xtractflow_api_key: str = ""
    xtractflow_classify_timeout_seconds: int = 30
    xtractflow_extract_timeout_seconds: int = 45

    openai_api_key: str = ""
    openai_model_name: str = ""
    openai_base_url: str = ""
    openai_timeout_seconds: int = 60

    pdf_engine: str = "pdfplumber"

    mock_flawed_ratio: float = Field(default=0.3, ge=0.0, le=1.0)

    stage_delay_seconds: float = Field(default=0.0, ge=0.0)
    strict_outcomes: bool = False

    classification_min_confidence: float = Field(default=0.70, ge=0.0, le=1.0)
    processed_min_confidence: float = Field(default=0.90, ge=0.0, le=1.0)
    review_min_confidence: float = Field(default=0.60, ge=0.0, le=1.0)
    field_warning_confidence: float = Field(default=0.80, ge=0.0, le=1.0)
    field_error_confidence: float = Field(default=0.60, ge=0.0, le=1.0)
    max_review_errors: int = Field(default=1, ge=0)
