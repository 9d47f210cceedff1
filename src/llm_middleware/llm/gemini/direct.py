"""
Google Gemini Direct API client (generativelanguage.googleapis.com).

Authenticates with an API key passed as the `key` query parameter.
"""

from typing import Optional

from llm_middleware.llm.gemini.base import GeminiBaseClient
from llm_middleware.models.enums import LLMProvider
from llm_middleware.models.llm_models import LLMRequestOptions

GEMINI_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiDirectClient(GeminiBaseClient):
    """
    Gemini Direct API adapter.

    Credentials (first defined wins): options.auth_token, GEMINI_API_KEY,
    GOOGLE_API_KEY. Default model: GEMINI_MODEL.
    """

    provider = LLMProvider.GOOGLE

    def __init__(self, base_url: str = GEMINI_API_BASE_URL, **kwargs):
        super().__init__(base_url, **kwargs)

    def default_model(self) -> Optional[str]:
        return self.settings.GEMINI_MODEL

    def _api_key(self, options: LLMRequestOptions) -> str:
        return self._require_credential(
            options.auth_token or self.settings.GEMINI_API_KEY or self.settings.GOOGLE_API_KEY,
            "GEMINI_API_KEY (or GOOGLE_API_KEY)",
        )

    def check_configuration(self, options: LLMRequestOptions) -> None:
        self._api_key(options)

    def get_base_url(self, model: str, region: Optional[str]) -> str:
        return self.base_url

    def get_endpoint_url(self, model: str, region: Optional[str], options: LLMRequestOptions) -> str:
        base_url = (options.base_url or self.base_url).rstrip("/")
        return f"{base_url}/models/{model}:generateContent"

    async def get_auth(self, options: LLMRequestOptions) -> tuple[dict, dict]:
        return {}, {"key": self._api_key(options)}
