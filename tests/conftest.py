import threading

import pytest

from review_agent.config import ConfigProvider, LLMConfig, ReviewSettings, Settings
from review_agent.observability.errors import ErrorTracker
from review_agent.observability.metrics import MetricsCollector


class FakeLLMClient:
    """Stands in for LLMClient; replies from a script or blocks on demand."""

    def __init__(self, replies=None, block=None):
        self.replies = list(replies or ["No issues."])
        self.block = block
        self.prompts = []
        self.active = 0
        self.max_active = 0
        self.closed = False
        self._lock = threading.Lock()

    def call(self, prompt):
        with self._lock:
            self.prompts.append(prompt)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.block is not None:
                self.block.wait(timeout=5)
            reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
            if isinstance(reply, BaseException):
                raise reply
            return reply
        finally:
            with self._lock:
                self.active -= 1

    def close(self):
        self.closed = True


@pytest.fixture
def test_settings():
    return Settings(ENABLE_METRICS=True, ERROR_TRACKING_ENABLED=True, LOG_LEVEL="DEBUG")


@pytest.fixture
def llm_config():
    return LLMConfig(
        provider="openai",
        api_key="test-key",
        api_url="https://llm.example.com/v1",
        model="test-model",
    )


@pytest.fixture
def review_settings():
    return ReviewSettings()


@pytest.fixture
def config_provider(llm_config, review_settings):
    return ConfigProvider(llm_config=llm_config, review_settings=review_settings)


@pytest.fixture
def unconfigured_provider():
    return ConfigProvider(llm_config=LLMConfig(api_key=""))


@pytest.fixture
def metrics(test_settings):
    return MetricsCollector(test_settings)


@pytest.fixture
def error_tracker(test_settings):
    return ErrorTracker(test_settings)


@pytest.fixture
def release():
    """Event that unblocks FakeLLMClient; always set on teardown."""
    event = threading.Event()
    yield event
    event.set()


@pytest.fixture
def fake_llm():
    """The FakeLLMClient class, for building scripted clients."""
    return FakeLLMClient
