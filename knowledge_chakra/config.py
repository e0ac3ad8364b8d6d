"""Application configuration.

Settings are read from ``CHAKRA_*`` environment variables (or a ``.env``
file) through Pydantic Settings, so local and production deployments differ
only in their environment.
"""

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class AssessmentDefaults(BaseModel):
    """Named defaults applied when an assessment is created.

    Override individual values with e.g.
    ``CHAKRA_ASSESSMENT_DEFAULTS__PASSING_SCORE=50``.
    """

    passing_score: int = Field(default=60, ge=0, le=100)
    total_points: int = Field(default=100, ge=0)
    question_points: int = Field(default=1, ge=0)
    quiz_submission_type: str = "autograded"
    assignment_submission_type: str = "file"


class Settings(BaseSettings):
    """Core settings.

    - ``database_url``: SQLAlchemy URL, local SQLite by default.
    - ``secret_key``: signs bearer tokens; must be overridden in production.
    - ``log_json``: emit JSON log lines instead of the readable format.
    """

    app_name: str = Field(default="Knowledge Chakra API")
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    database_url: str = Field(
        default="sqlite:///./knowledge_chakra.db", description="SQLAlchemy database URL"
    )
    secret_key: str = Field(
        default="change-me-in-production", description="Token signing secret"
    )
    token_expire_hours: int = Field(default=24, ge=1)
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)
    assessment_defaults: AssessmentDefaults = Field(default_factory=AssessmentDefaults)

    model_config = {
        "env_prefix": "CHAKRA_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
    }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached global settings instance."""

    return Settings()
