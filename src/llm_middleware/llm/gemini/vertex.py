"""
Google Vertex AI client with service account authentication.

Key differences from the Gemini Direct API:
- OAuth2 bearer token (service account) instead of an API key
- Regional endpoints (e.g. europe-west3 for Frankfurt) for data residency
- Requires a Google Cloud project ID
- Optional region rotation on quota errors (see region_rotation.py)

Uses the v1beta1 API: thinkingConfig is only available there.
"""

import asyncio
import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import google.auth.transport.requests
import structlog
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account

from llm_middleware.llm.exceptions import LLMAuthenticationError, LLMConfigurationError
from llm_middleware.llm.gemini.base import GeminiBaseClient
from llm_middleware.llm.gemini.region_rotation import RegionCursor, validate_rotation_config
from llm_middleware.models.enums import LLMProvider
from llm_middleware.models.llm_models import (
    LLMRequestOptions,
    NormalizedResponse,
    RegionRotationConfig,
)
from llm_middleware.models.multimodal import MultimodalContent
from llm_middleware.retry.classifier import is_quota_error

logger = structlog.get_logger(__name__)

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
GLOBAL_REGION = "global"
TOKEN_LIFETIME_SECONDS = 3600
TOKEN_REFRESH_BUFFER_SECONDS = 5 * 60


@dataclass
class CachedToken:
    token: str
    expires_at: float  # epoch seconds

    def is_valid(self, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return now < self.expires_at - TOKEN_REFRESH_BUFFER_SECONDS


class VertexAIClient(GeminiBaseClient):
    """
    Vertex AI adapter.

    Settings used:
    - GOOGLE_CLOUD_PROJECT: project ID (or options.project_id)
    - VERTEX_AI_REGION: region (or options.region), default europe-west3
    - GOOGLE_APPLICATION_CREDENTIALS: path to service account JSON
    - VERTEX_AI_SERVICE_ACCOUNT_KEY: inline service account JSON
    - VERTEX_AI_MODEL: default model

    Service account material is resolved in order: options.service_account_key,
    options.service_account_key_path, GOOGLE_APPLICATION_CREDENTIALS,
    VERTEX_AI_SERVICE_ACCOUNT_KEY.

    The access token is cached per instance and refreshed 5 minutes before
    expiry. Concurrent calls near expiry may each refresh; that is harmless.
    """

    provider = LLMProvider.VERTEX_AI

    def __init__(
        self,
        region_rotation: Union[RegionRotationConfig, Mapping[str, Any], None] = None,
        **kwargs,
    ):
        """
        Args:
            region_rotation: Opt-in rotation through regions on quota errors

        Raises:
            LLMConfigurationError: Invalid region rotation config
        """
        self.region_rotation = validate_rotation_config(region_rotation)
        super().__init__("https://aiplatform.googleapis.com", **kwargs)
        self._token_cache: Optional[CachedToken] = None
        self._credentials: Optional[service_account.Credentials] = None

    def default_model(self) -> Optional[str]:
        return self.settings.VERTEX_AI_MODEL

    # === Region & endpoint ===

    @staticmethod
    def is_preview_model(model: str) -> bool:
        """Preview models are only served from the global endpoint."""
        return "-preview" in model.lower()

    def get_configured_region(self, options: LLMRequestOptions) -> str:
        return options.region or self.settings.VERTEX_AI_REGION or "europe-west3"

    def _effective_region(self, model: str, region: Optional[str]) -> str:
        region = region or self.settings.VERTEX_AI_REGION
        if self.is_preview_model(model) and region != GLOBAL_REGION:
            logger.warning(
                "Preview model detected, using global endpoint (no EU data residency guarantee)",
                model=model,
                configured_region=region,
                effective_region=GLOBAL_REGION,
            )
            return GLOBAL_REGION
        return region

    def get_project_id(self, options: LLMRequestOptions) -> str:
        project_id = options.project_id or self.settings.GOOGLE_CLOUD_PROJECT
        if not project_id:
            raise LLMConfigurationError(
                "Google Cloud Project ID is required for Vertex AI. "
                "Set GOOGLE_CLOUD_PROJECT or pass project_id in options."
            )
        return project_id

    def check_configuration(self, options: LLMRequestOptions) -> None:
        self.get_project_id(options)

    @staticmethod
    def _regional_base_url(region: str) -> str:
        if region == GLOBAL_REGION:
            return "https://aiplatform.googleapis.com"
        return f"https://{region}-aiplatform.googleapis.com"

    def get_base_url(self, model: str, region: Optional[str]) -> str:
        return self._regional_base_url(self._effective_region(model, region))

    def get_endpoint_url(self, model: str, region: Optional[str], options: LLMRequestOptions) -> str:
        effective = self._effective_region(model, region)
        base_url = self._regional_base_url(effective)
        project_id = self.get_project_id(options)
        return (
            f"{base_url}/v1beta1/projects/{project_id}/locations/{effective}"
            f"/publishers/google/models/{model}:generateContent"
        )

    # === Authentication ===

    async def get_auth(self, options: LLMRequestOptions) -> tuple[dict, dict]:
        token = await self.get_access_token(options)
        return {"Authorization": f"Bearer {token}"}, {}

    async def get_access_token(self, options: LLMRequestOptions) -> str:
        """Cached access token, refreshed when within 5 minutes of expiry."""
        if self._token_cache is not None and self._token_cache.is_valid():
            return self._token_cache.token
        return await self._fetch_access_token(options)

    async def _fetch_access_token(self, options: LLMRequestOptions) -> str:
        if self._credentials is None:
            self._credentials = self._build_credentials(options)

        try:
            # google-auth refresh is blocking
            await asyncio.to_thread(
                self._credentials.refresh,
                google.auth.transport.requests.Request(),
            )
        except GoogleAuthError as e:
            logger.error("Failed to fetch Vertex AI access token", error=str(e))
            raise LLMAuthenticationError(
                f"Failed to authenticate with Vertex AI: {e}. "
                "Please check your service account credentials.",
                details={"error_type": type(e).__name__},
            ) from e

        token = self._credentials.token
        if not token:
            raise LLMAuthenticationError("Failed to obtain access token from service account")

        self._token_cache = CachedToken(token=token, expires_at=time.time() + TOKEN_LIFETIME_SECONDS)
        logger.info("Obtained fresh Vertex AI access token", expires_in_seconds=TOKEN_LIFETIME_SECONDS)
        return token

    def _build_credentials(self, options: LLMRequestOptions) -> service_account.Credentials:
        info = self.load_service_account_info(options)
        info.setdefault("token_uri", DEFAULT_TOKEN_URI)
        try:
            credentials = service_account.Credentials.from_service_account_info(
                info,
                scopes=[CLOUD_PLATFORM_SCOPE],
            )
        except ValueError as e:
            raise LLMConfigurationError(f"Invalid service account credentials: {e}") from e

        logger.info(
            "Initialized Vertex AI auth client",
            client_email=info["client_email"],
            project_id=info.get("project_id"),
        )
        return credentials

    def load_service_account_info(self, options: LLMRequestOptions) -> dict:
        """
        Resolve service account JSON from options or settings.

        Raises:
            LLMConfigurationError: No source configured, unreadable file,
                invalid JSON, or missing client_email / private_key
        """
        if options.service_account_key:
            info = dict(options.service_account_key)
        elif options.service_account_key_path:
            info = self._load_credentials_file(options.service_account_key_path)
        elif self.settings.GOOGLE_APPLICATION_CREDENTIALS:
            info = self._load_credentials_file(self.settings.GOOGLE_APPLICATION_CREDENTIALS)
        elif self.settings.VERTEX_AI_SERVICE_ACCOUNT_KEY:
            try:
                info = json.loads(self.settings.VERTEX_AI_SERVICE_ACCOUNT_KEY)
            except json.JSONDecodeError as e:
                raise LLMConfigurationError("VERTEX_AI_SERVICE_ACCOUNT_KEY is not valid JSON") from e
        else:
            raise LLMConfigurationError(
                "Vertex AI service account credentials not found. Provide one of: "
                "service_account_key or service_account_key_path in options, "
                "GOOGLE_APPLICATION_CREDENTIALS (path to JSON file), "
                "VERTEX_AI_SERVICE_ACCOUNT_KEY (JSON string)."
            )

        if not isinstance(info, dict) or not info.get("client_email") or not info.get("private_key"):
            raise LLMConfigurationError(
                "Invalid service account credentials: missing client_email or private_key"
            )
        return info

    @staticmethod
    def _load_credentials_file(file_path: str) -> dict:
        path = Path(file_path).expanduser().resolve()
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise LLMConfigurationError(f"Service account file not found: {file_path}") from e
        except (OSError, json.JSONDecodeError) as e:
            raise LLMConfigurationError(f"Failed to load service account file: {e}") from e

    def clear_token_cache(self) -> None:
        """Drop the cached token and credentials (next call re-authenticates)."""
        self._token_cache = None
        self._credentials = None

    # === Call sequence with region rotation ===

    async def call_with_system_message(
        self,
        prompt: MultimodalContent,
        system_message: str,
        options: Optional[LLMRequestOptions] = None,
    ) -> NormalizedResponse:
        """
        Call Vertex AI, rotating regions on quota errors when configured.

        Without a rotation config, or for preview models (global endpoint),
        every attempt goes to the same region.

        With rotation, attempts walk [*regions, fallback]. If the retry
        budget runs out on a quota error before the fallback was reached
        and always_try_fallback is set, one bonus attempt (no retries) is
        made on the fallback.
        """
        options = options or LLMRequestOptions()
        model = self._resolve_model(options)
        # Bonus attempt must share the session id of the first call
        options = options.model_copy(update={"session_id": self._session_id(options)})

        rotation = self.region_rotation
        if rotation is None or self.is_preview_model(model):
            cursor = RegionCursor.fixed(self.get_configured_region(options))
            return await self._generate(prompt, system_message, options, cursor=cursor)

        cursor = RegionCursor.from_config(rotation)
        logger.info("Region rotation enabled for Vertex AI call", sequence=cursor.sequence, model=model)

        try:
            return await self._generate(
                prompt,
                system_message,
                options,
                cursor=cursor,
                on_retry=cursor.on_retry,
            )
        except Exception as error:
            if not is_quota_error(error) or not rotation.always_try_fallback or cursor.at_fallback:
                raise
            logger.info(
                "Retry budget exhausted, bonus attempt on fallback region",
                exhausted_region=cursor.current_region,
                fallback=cursor.fallback,
            )

        cursor.move_to_fallback()
        policy = self._retry_policy(options)
        bonus_options = options.model_copy(
            update={"retry": policy.model_copy(update={"max_retries": 0})}
        )
        return await self._generate(prompt, system_message, bonus_options, cursor=cursor)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"region={self.settings.VERTEX_AI_REGION}, "
            f"rotation={self.region_rotation.regions + [self.region_rotation.fallback] if self.region_rotation else None})"
        )
