"""
Unit Tests: Configuration
=========================
Settings loading, LLM connection config and review settings behaviour.
"""
import pytest
from pydantic import ValidationError

from review_agent.config import (
    DEFAULT_ENABLED_CATEGORIES,
    ConfigProvider,
    LLMConfig,
    ReviewSettings,
    Settings,
)
from review_agent.llm.schemas import ReviewFocus, ReviewLanguage, Severity


# ---------------------------------------------------------------------------
# 1. Settings from environment
# ---------------------------------------------------------------------------
class TestSettings:

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("LLM_API_KEY", "env-key")
        monkeypatch.setenv("LLM_MODEL", "gpt-4o-mini")
        monkeypatch.setenv("REVIEW_LANGUAGE", "Chinese")
        monkeypatch.setenv("REVIEW_ENABLED_CATEGORIES", "Security, Performance")

        settings = Settings(_env_file=None)

        assert settings.LLM_API_KEY == "env-key"
        llm_config = settings.to_llm_config()
        assert llm_config.model == "gpt-4o-mini"
        assert llm_config.is_configured()

        review_settings = settings.to_review_settings()
        assert review_settings.review_language == ReviewLanguage.CHINESE
        assert review_settings.enabled_categories == {"Security", "Performance"}

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LLM_API_KEY", raising=False)
        settings = Settings(_env_file=None)
        assert settings.LLM_MAX_RETRIES == 0
        assert settings.REVIEW_TIMEOUT_SECONDS == 30.0
        assert not settings.to_llm_config().is_configured()
        assert settings.to_review_settings().enabled_categories == set(DEFAULT_ENABLED_CATEGORIES)


# ---------------------------------------------------------------------------
# 2. LLMConfig
# ---------------------------------------------------------------------------
class TestLLMConfig:

    def test_not_configured_without_key(self):
        config = LLMConfig()
        assert not config.is_configured()
        assert config.validate_config() == "API key must not be empty"

    def test_whitespace_counts_as_missing(self):
        config = LLMConfig(api_key="key", model="   ")
        assert not config.is_configured()
        assert config.validate_config() == "Model name must not be empty"

    def test_valid_config(self, llm_config):
        assert llm_config.is_configured()
        assert llm_config.validate_config() is None

    @pytest.mark.parametrize("field,value", [
        ("max_tokens", 0),
        ("max_tokens", 32001),
        ("temperature", -0.1),
        ("temperature", 2.1),
        ("timeout", 0),
        ("timeout", 301),
    ])
    def test_numeric_bounds(self, field, value):
        with pytest.raises(ValidationError):
            LLMConfig(**{field: value})

    def test_full_api_url_appends_chat_path_for_openai(self):
        assert LLMConfig(api_url="https://api.openai.com/v1").full_api_url == \
            "https://api.openai.com/v1/chat/completions"
        assert LLMConfig(api_url="https://host/v1/").full_api_url == "https://host/v1/chat/completions"
        assert LLMConfig(api_url="https://host/v1/chat/completions").full_api_url == \
            "https://host/v1/chat/completions"

    def test_full_api_url_untouched_for_other_providers(self):
        config = LLMConfig(provider="ollama", api_url="http://localhost:11434/api/chat")
        assert config.full_api_url == "http://localhost:11434/api/chat"

    def test_proxies(self):
        assert LLMConfig().proxies == {}
        config = LLMConfig(proxy_host="proxy.local", proxy_port=3128)
        assert config.has_proxy
        assert not config.has_proxy_auth
        assert config.proxies["https"] == "http://proxy.local:3128"

        config = LLMConfig(
            proxy_host="proxy.local", proxy_port=3128,
            proxy_username="user", proxy_password="pw",
        )
        assert config.proxies["http"] == "http://user:pw@proxy.local:3128"

    def test_repr_hides_secrets(self):
        config = LLMConfig(api_key="sk-secret", proxy_password="hunter2")
        assert "sk-secret" not in repr(config)
        assert "hunter2" not in str(config)


# ---------------------------------------------------------------------------
# 3. ReviewSettings
# ---------------------------------------------------------------------------
class TestReviewSettings:

    def test_defaults(self):
        settings = ReviewSettings()
        assert settings.review_language == ReviewLanguage.ENGLISH
        assert settings.review_focus == ReviewFocus.COMPREHENSIVE
        assert settings.minimum_severity == Severity.INFO
        assert settings.enabled_categories == set(DEFAULT_ENABLED_CATEGORIES)
        assert settings.max_issues_per_file == 50

    def test_max_issues_clamped(self):
        assert ReviewSettings(max_issues_per_file=0).max_issues_per_file == 1
        settings = ReviewSettings()
        settings.max_issues_per_file = -5
        assert settings.max_issues_per_file == 1

    def test_unknown_values_fall_back(self):
        settings = ReviewSettings(review_language="Klingon", review_focus="style", minimum_severity="nope")
        assert settings.review_language == ReviewLanguage.ENGLISH
        assert settings.review_focus == ReviewFocus.COMPREHENSIVE
        assert settings.minimum_severity == Severity.INFO

    def test_category_toggles(self):
        settings = ReviewSettings(enabled_categories={"Security"})
        settings.toggle_category("Performance")
        assert settings.is_category_enabled("Performance")
        settings.toggle_category("Security")
        assert not settings.is_category_enabled("Security")
        settings.disable_category("Performance")
        assert settings.enabled_categories == set()

    def test_should_show_issue(self):
        settings = ReviewSettings(minimum_severity=Severity.WARNING, enabled_categories={"Security"})
        assert not settings.should_show_issue(Severity.INFO, "Security")
        assert settings.should_show_issue(Severity.ERROR, "Security")
        assert not settings.should_show_issue(Severity.ERROR, "Performance")
        assert settings.should_show_issue(Severity.ERROR, None)

        settings.enabled_categories = set()
        assert settings.should_show_issue(Severity.ERROR, "Performance")

    def test_reset_to_defaults(self):
        settings = ReviewSettings(review_language="Chinese", max_issues_per_file=3, enabled_categories=set())
        settings.reset_to_defaults()
        assert settings == ReviewSettings()

    def test_summary_text(self):
        text = ReviewSettings().summary_text()
        assert "Language: English" in text
        assert "Min Severity: Info" in text
        assert "Enabled Categories: 5" in text


# ---------------------------------------------------------------------------
# 4. ConfigProvider
# ---------------------------------------------------------------------------
class TestConfigProvider:

    def test_returns_copies(self, config_provider):
        settings = config_provider.get_review_settings()
        settings.max_issues_per_file = 2
        assert config_provider.get_review_settings().max_issues_per_file == 50

    def test_set_replaces_config(self, config_provider):
        assert config_provider.is_configured()
        config_provider.set_llm_config(LLMConfig(api_key=""))
        assert not config_provider.is_configured()

    def test_from_settings(self, monkeypatch):
        monkeypatch.setenv("LLM_API_KEY", "k")
        provider = ConfigProvider.from_settings(Settings(_env_file=None))
        assert provider.get_llm_config().api_key == "k"
