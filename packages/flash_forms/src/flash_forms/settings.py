"""
Runtime settings for Flash Forms.
"""

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FormsSettings(BaseSettings):
    """
    Environment driven settings, read from ``FLASH_FORMS_*`` variables.

    Form definitions themselves live in the forms configuration file
    (see :class:`flash_forms.config.Config`); these settings only control how
    the plugin behaves inside the host application.
    """

    model_config = SettingsConfigDict(
        env_prefix="FLASH_FORMS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Basic Environment ---
    DEBUG: bool = True
    SECRET_KEY: str = ""

    # --- Forms configuration ---
    CONFIG_FILE: Path | None = None
    SESSION_NAMESPACE: str = "flash_forms"

    # --- Error reporting ---
    # Installation root, replaced by "{root}" in traces shown to users.
    ROOT_PATH: Path = Field(default_factory=Path.cwd)
    TRACE_DEPTH: int = Field(default=10, ge=1)

    # --- Routing ---
    ASYNC_ROUTE_PREFIX: str = "/async/flash_forms"

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Path | None = None

    @model_validator(mode="after")
    def validate_security(self) -> "FormsSettings":
        """Session signing needs a secret key outside of debug mode."""
        if not self.DEBUG and not self.SECRET_KEY:
            raise ValueError("SECRET_KEY is mandatory in production mode.")
        return self

    def compiler_session_key(self, form_name: str) -> str:
        return f"{self.SESSION_NAMESPACE}_compiler_{form_name}"

    def feedback_session_key(self, form_name: str) -> str:
        return f"{self.SESSION_NAMESPACE}_feedback_{form_name}"
