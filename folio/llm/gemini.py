"""
Gemini Model Manager - shared model instance per configuration.

Supports two backends:
  1. google-generativeai (API key) - GEMINI_API_KEY / GOOGLE_API_KEY
  2. Vertex AI SDK (Cloud Run) - GOOGLE_CLOUD_PROJECT + service account
"""

from __future__ import annotations

from functools import lru_cache

from folio.infrastructure.settings import Settings
from folio.observability.logging import get_logger

logger = get_logger(__name__)


class GeminiInitializationError(RuntimeError):
    """Raised when Gemini model cannot be initialized."""


@lru_cache(maxsize=1)
def get_gemini_model(settings: Settings):
    """
    Get or create the Gemini model for these settings.

    An API key wins over a cloud project. Settings is frozen, so it doubles
    as the cache key.

    Returns:
        GenerativeModel

    Raises:
        GeminiInitializationError: If no credentials are configured or the SDK fails
    """
    if settings.gemini_api_key:
        try:
            import google.generativeai as genai

            genai.configure(api_key=settings.gemini_api_key)
            model = genai.GenerativeModel(settings.gemini_model)
        except Exception as e:
            logger.error("Failed to initialize Gemini model: %s", e)
            raise GeminiInitializationError(f"Failed to initialize Gemini: {e}") from e

        logger.info("Initialized Gemini model (google-generativeai): model=%s", settings.gemini_model)
        return model

    if settings.google_cloud_project:
        try:
            import vertexai
            from vertexai.generative_models import GenerativeModel

            vertexai.init(project=settings.google_cloud_project, location=settings.gemini_location)
            model = GenerativeModel(settings.gemini_model)
        except Exception as e:
            logger.error("Failed to initialize Gemini model: %s", e)
            raise GeminiInitializationError(f"Failed to initialize Gemini: {e}") from e

        logger.info(
            "Initialized Gemini model (Vertex AI): project=%s, location=%s, model=%s",
            settings.google_cloud_project,
            settings.gemini_location,
            settings.gemini_model,
        )
        return model

    raise GeminiInitializationError("Neither GEMINI_API_KEY nor GOOGLE_CLOUD_PROJECT is set")
