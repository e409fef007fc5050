"""
LLM client for code review.

Sends one chat-completion request per call over HTTP and extracts the
assistant's reply text from the response envelope. Retries are not done
here; the orchestrator owns retry policy.
"""

import json
import logging
import re
from typing import TYPE_CHECKING, Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter

from review_agent.llm.prompts import build_review_prompt

if TYPE_CHECKING:
    from review_agent.config import LLMConfig, ReviewSettings

logger = logging.getLogger(__name__)


# Connect timeout is fixed; the configured timeout bounds the read
CONNECT_TIMEOUT_SECONDS = 30

CONTENT_MARKER = '"content":"'

CONNECTION_TEST_CODE = (
    'public class Test { public static void main(String[] args) '
    '{ System.out.println("Hello"); } }'
)


class LLMError(Exception):
    """Base exception for LLM-related errors."""
    pass


class ConfigError(LLMError):
    """LLM configuration is incomplete or invalid."""
    pass


class TransportError(LLMError):
    """Non-2xx status, connection failure or timeout."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    @property
    def retryable(self) -> bool:
        """Connection failures, rate limiting and server errors may succeed later."""
        return self.status_code is None or self.status_code == 429 or self.status_code >= 500


class ProtocolError(LLMError):
    """2xx response whose body does not carry the reply text."""
    pass


def json_escape(text: str) -> str:
    """Escape text for embedding inside a JSON string literal."""
    return json.dumps(text, ensure_ascii=False)[1:-1]


_SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\b",
    "f": "\f",
    '"': '"',
    "\\": "\\",
    "/": "/",
}

_ESCAPE_PATTERN = re.compile(r'\\(u[0-9a-fA-F]{4}|.)', re.DOTALL)


def _replace_escape(match: "re.Match") -> str:
    escape = match.group(1)
    if escape.startswith("u") and len(escape) == 5:
        return chr(int(escape[1:], 16))
    # Unknown escapes are kept verbatim
    return _SIMPLE_ESCAPES.get(escape, match.group(0))


def json_unescape(text: str) -> str:
    """Inverse of json_escape. Tolerates escapes JSON would reject."""
    try:
        return json.loads(f'"{text}"', strict=False)
    except json.JSONDecodeError:
        return _ESCAPE_PATTERN.sub(_replace_escape, text)


def build_request_body(prompt: str, llm_config: "LLMConfig") -> str:
    """Serialise the chat-completion request for a single user message."""
    payload = {
        "model": llm_config.model,
        "messages": [
            {"role": "user", "content": prompt}
        ],
        "max_tokens": llm_config.max_tokens,
        "temperature": llm_config.temperature,
    }
    return json.dumps(payload, ensure_ascii=False)


def _content_from_envelope(envelope: Any) -> Optional[str]:
    """Pull the reply text out of the known provider response shapes."""
    if not isinstance(envelope, dict):
        return None

    # OpenAI-style chat completion
    choices = envelope.get("choices")
    if isinstance(choices, list) and choices:
        first = choices[0] if isinstance(choices[0], dict) else {}
        message = first.get("message") or {}
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return message["content"]
        if isinstance(first.get("text"), str):
            return first["text"]

    content = envelope.get("content")

    # Anthropic-style messages
    if isinstance(content, list):
        texts = [
            block.get("text", "") for block in content
            if isinstance(block, dict) and block.get("type", "text") == "text"
        ]
        if texts:
            return "".join(texts)

    if isinstance(content, str):
        return content

    # Ollama-style chat
    message = envelope.get("message")
    if isinstance(message, dict) and isinstance(message.get("content"), str):
        return message["content"]

    return None


def _extract_by_marker(response_body: str) -> str:
    """
    Locate the literal "content":" marker and read up to the next
    unescaped quote.

    Known fragility: a reply that itself contains the marker, or JSON
    formatted with whitespace around the colon, is misread.
    """
    start = response_body.find(CONTENT_MARKER)
    if start == -1:
        raise ProtocolError("Response does not contain a content field")

    start += len(CONTENT_MARKER)
    index = start
    while index < len(response_body):
        char = response_body[index]
        if char == "\\":
            index += 2
            continue
        if char == '"':
            return json_unescape(response_body[start:index])
        index += 1

    raise ProtocolError("Content field is not terminated")


def extract_content(response_body: str) -> str:
    """
    Extract the assistant reply from a response body.

    Decodes the JSON envelope first and only falls back to the substring
    scan for bodies that do not parse or use an unknown shape.

    Raises:
        ProtocolError: If no reply text can be located
    """
    try:
        envelope = json.loads(response_body)
    except (json.JSONDecodeError, TypeError):
        envelope = None

    content = _content_from_envelope(envelope)
    if content is not None:
        return content

    logger.debug("Unrecognised response envelope, scanning for content marker")
    return _extract_by_marker(response_body or "")


class LLMClient:
    """
    HTTP client for an OpenAI-compatible chat-completion endpoint.

    Handles:
    - Bearer token authentication
    - Connect/read timeouts and optional proxy
    - Mapping failures onto ConfigError / TransportError / ProtocolError
    """

    def __init__(
        self,
        llm_config: "LLMConfig",
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize LLM client.

        Args:
            llm_config: Connection settings
            session: Optional pre-built session (tests inject one)
        """
        self.llm_config = llm_config
        self.session = session or self._build_session()

    @staticmethod
    def _build_session() -> requests.Session:
        session = requests.Session()

        # Exactly one request per call
        adapter = HTTPAdapter(max_retries=0)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.llm_config.api_key}",
        }

    def call(self, prompt: str) -> str:
        """
        Send a prompt and return the reply text.

        Args:
            prompt: Full user prompt

        Returns:
            Assistant reply text

        Raises:
            ConfigError: If the configuration is incomplete (no request is made)
            TransportError: On non-2xx status, connection failure or timeout
            ProtocolError: If a 2xx body does not contain the reply
        """
        config = self.llm_config
        if not config.is_configured():
            raise ConfigError(config.validate_config() or "LLM configuration is incomplete")

        url = config.full_api_url
        body = build_request_body(prompt, config)

        logger.debug(
            f"Calling LLM {config.provider}/{config.model}",
            extra={"url": url, "prompt_chars": len(prompt)},
        )

        try:
            response = self.session.post(
                url,
                data=body.encode("utf-8"),
                headers=self._get_headers(),
                timeout=(CONNECT_TIMEOUT_SECONDS, config.timeout),
                proxies=config.proxies or None,
            )
        except requests.Timeout as e:
            logger.warning(f"LLM request timed out: {e}")
            raise TransportError(f"LLM request timed out after {config.timeout}s") from e
        except requests.RequestException as e:
            logger.warning(f"LLM request failed: {e}")
            raise TransportError(f"LLM request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            logger.error(f"LLM API returned status {response.status_code}")
            raise TransportError(
                f"LLM API call failed, status code: {response.status_code}, "
                f"response: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        content = extract_content(response.text)
        logger.debug(f"LLM response: {content[:200]}...")
        return content

    def review_code(
        self,
        code: str,
        label: str,
        review_settings: "ReviewSettings",
    ) -> str:
        """Build the review prompt for code and return the raw model reply."""
        if not self.llm_config.is_configured():
            raise ConfigError("LLM configuration is not complete")

        prompt = build_review_prompt(code, label, review_settings)
        return self.call(prompt)

    def test_connection(self, review_settings: "ReviewSettings") -> bool:
        """Send a tiny review request; True when a non-empty reply comes back."""
        try:
            result = self.review_code(CONNECTION_TEST_CODE, "Test.java", review_settings)
        except LLMError as e:
            logger.info(f"LLM connection test failed: {e}")
            return False
        return bool(result and result.strip())

    def close(self) -> None:
        self.session.close()


def get_llm_client(
    llm_config: "LLMConfig",
    session: Optional[requests.Session] = None,
) -> LLMClient:
    """
    Factory function to get an LLM client.

    This is the orchestrator's default client factory; it builds one
    client per review.

    Args:
        llm_config: Connection settings
        session: Optional pre-built session

    Returns:
        Configured LLM client
    """
    logger.info(f"Initializing LLM client for {llm_config.provider} with model {llm_config.model}")
    return LLMClient(llm_config, session=session)
