# storefront/services/llm_client.py
import requests

from storefront.domain.errors import RateLimitedError, UpstreamError
from storefront.utils.logging import get_logger
from storefront.utils.retry import http_retry
from storefront.utils import settings

logger = get_logger(__name__)


class ChatCompletionProvider:
    """
    Klient endpointu /chat/completions w formacie OpenAI (Groq, HF router).
    - 429 -> RateLimitedError (bez retry, decyzje podejmuje klasyfikator)
    - inny status != 2xx -> UpstreamError
    - bledy transportu -> retry tenacity, potem RequestException
    """

    def __init__(
        self,
        name: str,
        url: str,
        api_key: str,
        model: str,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        self.name = name
        self.url = url
        self.api_key = api_key
        self.model = model
        self.timeout = timeout or settings.CLASSIFIER_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    @http_retry()
    def _post(self, payload: dict) -> requests.Response:
        logger.debug(f"{self.name} POST {self.url}")
        return self.session.post(
            self.url,
            json=payload,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
        )

    def complete(self, prompt: str, max_tokens: int = 256, temperature: float = 0.1) -> str:
        resp = self._post(
            {
                "model": self.model,
                "messages": [{"role": "user", "content": prompt}],
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )

        if resp.status_code == 429:
            raise RateLimitedError(f"{self.name} rate limited (HTTP 429)")
        if not resp.ok:
            raise UpstreamError(f"{self.name} API error: {resp.status_code} {resp.text[:200]}")

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamError(f"{self.name} returned non-JSON body") from e

        #ksztalt OpenAI: choices[0].message.content
        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices or not isinstance(choices, list):
            raise UpstreamError(f"{self.name} response has no choices")
        first = choices[0] if isinstance(choices[0], dict) else {}
        message = first.get("message")
        if not isinstance(message, dict):
            raise UpstreamError(f"{self.name} response has no message object")
        content = message.get("content")
        if not isinstance(content, str):
            raise UpstreamError(f"{self.name} response has no message content")
        return content.strip()


def groq_provider(session: requests.Session | None = None) -> ChatCompletionProvider:
    return ChatCompletionProvider(
        name="groq",
        url=settings.GROQ_API_URL,
        api_key=settings.GROQ_API_KEY,
        model=settings.GROQ_MODEL,
        session=session,
    )


def huggingface_provider(session: requests.Session | None = None) -> ChatCompletionProvider:
    return ChatCompletionProvider(
        name="huggingface",
        url=settings.HUGGINGFACE_API_URL,
        api_key=settings.HUGGINGFACE_API_KEY,
        model=settings.HUGGINGFACE_MODEL,
        session=session,
    )
