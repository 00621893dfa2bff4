"""
Application configuration management using Pydantic Settings.
"""
import logging
from typing import Literal, Optional
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from dotenv import load_dotenv

# Load .env first
load_dotenv()

logger = logging.getLogger(__name__)

FLOW_CATEGORIES = [
    "SIGN_UP",
    "SIGN_IN",
    "APPOINTMENT_BOOKING",
    "LEAD_GENERATION",
    "CONTACT_US",
    "CUSTOMER_SUPPORT",
    "SURVEY",
    "OTHER",
]


class Settings(BaseSettings):
    """Application settings"""

    # -------------------------
    # APPLICATION METADATA & RUNTIME
    # -------------------------
    app_name: str = "Flow Document Compiler"
    app_version: str = "0.1.0"
    api_title: str = "Flow Compiler API"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    # -------------------------
    # FLOW JSON FORMAT
    # -------------------------
    flow_json_version: str = "7.3"
    data_api_version: str = "3.0"
    default_flow_category: str = "LEAD_GENERATION"

    # -------------------------
    # EDITOR DEFAULTS
    # -------------------------
    default_screen_title: str = "New Screen"
    default_footer_label: str = "Submit"

    # -------------------------
    # LOGGING
    # -------------------------
    log_to_file: bool = False
    log_directory: str = "logs"
    log_file_name: Optional[str] = "flow-service.log"

    # -------------------------
    # VALIDATORS
    # -------------------------
    @field_validator('log_level', mode='before')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        return str(v).upper()

    @field_validator('environment', mode='before')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid_envs = ["development", "staging", "production"]
        if v not in valid_envs:
            logger.warning(f"Invalid environment '{v}', defaulting to 'development'")
            return "development"
        return v

    @field_validator('default_flow_category', mode='before')
    @classmethod
    def validate_default_flow_category(cls, v: str) -> str:
        value = str(v).upper()
        if value not in FLOW_CATEGORIES:
            raise ValueError(f"default_flow_category must be one of {FLOW_CATEGORIES}")
        return value

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="FLOW_",
        validate_default=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
