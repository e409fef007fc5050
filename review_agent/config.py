"""
Configuration module for the AI Code Review Agent.

Loads environment variables and provides centralized settings.
All secrets and configuration are managed through environment variables.

Two value objects are derived from the raw settings:
- LLMConfig: connection settings for the chat-completion endpoint
- ReviewSettings: review behaviour (language, focus, display filters)

ConfigProvider hands both to the review pipeline and lets the host
replace them at runtime.
"""

import threading
from typing import Annotated, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from review_agent.llm.schemas import ReviewFocus, ReviewLanguage, Severity


DEFAULT_ENABLED_CATEGORIES = [
    "Code Quality",
    "Performance",
    "Security",
    "Best Practices",
    "Maintainability",
]


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Secrets are loaded from environment or .env file.
    Never commit secrets to version control.
    """

    # Application
    ENVIRONMENT: str = Field(default="development")
    PORT: int = Field(default=8000)

    # LLM Configuration
    LLM_PROVIDER: str = Field(default="openai")
    LLM_API_KEY: str = Field(default="")
    LLM_API_URL: str = Field(default="https://api.openai.com/v1")
    LLM_MODEL: str = Field(default="gpt-3.5-turbo")
    LLM_MAX_TOKENS: int = Field(default=2048)
    LLM_TEMPERATURE: float = Field(default=0.3)
    LLM_TIMEOUT_SECONDS: int = Field(default=30)
    LLM_MAX_RETRIES: int = Field(default=0, ge=0)

    # Outbound proxy (optional)
    LLM_PROXY_HOST: str = Field(default="")
    LLM_PROXY_PORT: int = Field(default=0)
    LLM_PROXY_USERNAME: str = Field(default="")
    LLM_PROXY_PASSWORD: str = Field(default="")

    # Review Configuration
    REVIEW_LANGUAGE: str = Field(default="English")
    REVIEW_FOCUS: str = Field(default="comprehensive")
    REVIEW_MIN_SEVERITY: str = Field(default="INFO")
    REVIEW_ENABLED_CATEGORIES: Annotated[List[str], NoDecode] = Field(
        default=list(DEFAULT_ENABLED_CATEGORIES)
    )
    REVIEW_MAX_ISSUES_PER_FILE: int = Field(default=50)
    REVIEW_STRUCTURED_OUTPUT: bool = Field(default=False)
    REVIEW_SHOW_DIALOG: bool = Field(default=True)
    REVIEW_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)

    # Observability
    LOG_LEVEL: str = Field(default="INFO")
    ENABLE_METRICS: bool = Field(default=True)
    ERROR_TRACKING_ENABLED: bool = Field(default=True)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("REVIEW_ENABLED_CATEGORIES", mode="before")
    @classmethod
    def parse_enabled_categories(cls, v):
        """Parse comma-separated REVIEW_ENABLED_CATEGORIES into a list."""
        if isinstance(v, str):
            return [category.strip() for category in v.split(",") if category.strip()]
        return v

    def to_llm_config(self) -> "LLMConfig":
        """Build the LLM connection config from these settings."""
        return LLMConfig(
            provider=self.LLM_PROVIDER,
            api_key=self.LLM_API_KEY,
            api_url=self.LLM_API_URL,
            model=self.LLM_MODEL,
            max_tokens=self.LLM_MAX_TOKENS,
            temperature=self.LLM_TEMPERATURE,
            timeout=self.LLM_TIMEOUT_SECONDS,
            proxy_host=self.LLM_PROXY_HOST,
            proxy_port=self.LLM_PROXY_PORT,
            proxy_username=self.LLM_PROXY_USERNAME,
            proxy_password=self.LLM_PROXY_PASSWORD,
        )

    def to_review_settings(self) -> "ReviewSettings":
        """Build the review behaviour settings from these settings."""
        return ReviewSettings(
            review_language=self.REVIEW_LANGUAGE,
            review_focus=self.REVIEW_FOCUS,
            minimum_severity=Severity.from_name(self.REVIEW_MIN_SEVERITY),
            enabled_categories=set(self.REVIEW_ENABLED_CATEGORIES),
            max_issues_per_file=self.REVIEW_MAX_ISSUES_PER_FILE,
            structured_output=self.REVIEW_STRUCTURED_OUTPUT,
            show_review_dialog=self.REVIEW_SHOW_DIALOG,
        )


class LLMConfig(BaseModel):
    """Connection settings for the LLM chat-completion endpoint."""

    model_config = ConfigDict(validate_assignment=True)

    provider: str = "openai"
    api_key: str = ""
    api_url: str = "https://api.openai.com/v1"
    model: str = "gpt-3.5-turbo"
    max_tokens: int = Field(default=2048, ge=1, le=32000)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    timeout: int = Field(default=30, ge=1, le=300, description="Read timeout in seconds")
    proxy_host: str = ""
    proxy_port: int = Field(default=0, ge=0, le=65535)
    proxy_username: str = ""
    proxy_password: str = ""

    def is_configured(self) -> bool:
        """True when provider, key, URL and model are all present."""
        return all(
            value and value.strip()
            for value in (self.provider, self.api_key, self.api_url, self.model)
        )

    def validate_config(self) -> Optional[str]:
        """
        Check the connection settings.

        Numeric bounds are enforced by the field constraints, so only the
        required text fields are checked here.

        Returns:
            A human-readable description of the first problem, or None
        """
        if not self.provider.strip():
            return "LLM provider must not be empty"
        if not self.api_key.strip():
            return "API key must not be empty"
        if not self.api_url.strip():
            return "API URL must not be empty"
        if not self.model.strip():
            return "Model name must not be empty"
        return None

    @property
    def full_api_url(self) -> str:
        """Endpoint URL, completed with the chat path for OpenAI-style providers."""
        base_url = self.api_url.strip()
        if not base_url:
            return ""
        if self.provider == "openai" and not base_url.endswith("chat/completions"):
            if not base_url.endswith("/"):
                base_url += "/"
            base_url += "chat/completions"
        return base_url

    @property
    def has_proxy(self) -> bool:
        return bool(self.proxy_host.strip()) and self.proxy_port > 0

    @property
    def has_proxy_auth(self) -> bool:
        return self.has_proxy and bool(self.proxy_username.strip())

    @property
    def proxies(self) -> Dict[str, str]:
        """Proxy mapping in the shape requests expects."""
        if not self.has_proxy:
            return {}
        credentials = ""
        if self.has_proxy_auth:
            credentials = f"{self.proxy_username}:{self.proxy_password}@"
        proxy_url = f"http://{credentials}{self.proxy_host}:{self.proxy_port}"
        return {"http": proxy_url, "https": proxy_url}

    def __repr__(self) -> str:
        # Never leak the key or proxy password into logs
        return (
            f"LLMConfig(provider={self.provider!r}, api_url={self.api_url!r}, "
            f"model={self.model!r}, max_tokens={self.max_tokens}, "
            f"temperature={self.temperature}, timeout={self.timeout}, "
            f"has_proxy={self.has_proxy})"
        )

    __str__ = __repr__


class ReviewSettings(BaseModel):
    """Review behaviour and display settings."""

    model_config = ConfigDict(validate_assignment=True)

    review_language: ReviewLanguage = ReviewLanguage.ENGLISH
    review_focus: ReviewFocus = ReviewFocus.COMPREHENSIVE
    minimum_severity: Severity = Severity.INFO
    enabled_categories: Set[str] = Field(
        default_factory=lambda: set(DEFAULT_ENABLED_CATEGORIES)
    )
    max_issues_per_file: int = 50
    structured_output: bool = False

    # Display toggles, consumed by the host
    auto_review_enabled: bool = False
    show_review_dialog: bool = True
    output_to_console: bool = True
    show_line_numbers: bool = True
    show_code_suggestions: bool = True

    @field_validator("review_language", mode="before")
    @classmethod
    def parse_language(cls, v):
        return ReviewLanguage.from_value(v)

    @field_validator("review_focus", mode="before")
    @classmethod
    def parse_focus(cls, v):
        return ReviewFocus.from_value(v)

    @field_validator("minimum_severity", mode="before")
    @classmethod
    def parse_minimum_severity(cls, v):
        if isinstance(v, Severity):
            return v
        if isinstance(v, int):
            return Severity.from_level(v)
        return Severity.from_name(v)

    @field_validator("max_issues_per_file")
    @classmethod
    def clamp_max_issues(cls, v: int) -> int:
        """At least one issue is always shown."""
        return max(1, v)

    def is_category_enabled(self, category: str) -> bool:
        return category in self.enabled_categories

    def enable_category(self, category: str) -> None:
        self.enabled_categories = self.enabled_categories | {category}

    def disable_category(self, category: str) -> None:
        self.enabled_categories = self.enabled_categories - {category}

    def toggle_category(self, category: str) -> None:
        if self.is_category_enabled(category):
            self.disable_category(category)
        else:
            self.enable_category(category)

    def should_show_issue(self, severity: Severity, category: Optional[str] = None) -> bool:
        """Apply the minimum-severity and category display policy to one issue."""
        if not severity.meets_minimum_level(self.minimum_severity):
            return False
        return not category or not self.enabled_categories or self.is_category_enabled(category)

    def reset_to_defaults(self) -> None:
        defaults = ReviewSettings()
        for name in type(self).model_fields:
            setattr(self, name, getattr(defaults, name))

    def summary_text(self) -> str:
        return "\n".join([
            f"Auto Review: {'Enabled' if self.auto_review_enabled else 'Disabled'}",
            f"Language: {self.review_language.value}",
            f"Focus: {self.review_focus.value}",
            f"Min Severity: {self.minimum_severity.display_name}",
            f"Max Issues: {self.max_issues_per_file}",
            f"Enabled Categories: {len(self.enabled_categories)}",
        ])


class ConfigProvider:
    """
    Get/set access to the current LLM and review settings.

    The persistence mechanism belongs to the host; this object only keeps
    the latest values and hands out copies so a running review never sees
    a half-applied change.
    """

    def __init__(
        self,
        llm_config: Optional[LLMConfig] = None,
        review_settings: Optional[ReviewSettings] = None,
    ):
        self._lock = threading.Lock()
        self._llm_config = llm_config or LLMConfig()
        self._review_settings = review_settings or ReviewSettings()

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "ConfigProvider":
        return cls(
            llm_config=app_settings.to_llm_config(),
            review_settings=app_settings.to_review_settings(),
        )

    def get_llm_config(self) -> LLMConfig:
        with self._lock:
            return self._llm_config.model_copy(deep=True)

    def set_llm_config(self, llm_config: LLMConfig) -> None:
        with self._lock:
            self._llm_config = llm_config.model_copy(deep=True)

    def get_review_settings(self) -> ReviewSettings:
        with self._lock:
            return self._review_settings.model_copy(deep=True)

    def set_review_settings(self, review_settings: ReviewSettings) -> None:
        with self._lock:
            self._review_settings = review_settings.model_copy(deep=True)

    def is_configured(self) -> bool:
        return self.get_llm_config().is_configured()


# Global settings instance
settings = Settings()
