"""
Mood Inference Client
Text classification through the Hugging Face Inference API: an emotion model
first, a binary sentiment model as fallback.
"""

from typing import Any, Optional, Tuple
import logging

import httpx

from soundnest.config import Settings
from soundnest.services.mood_mapper import pick_top_label
from soundnest.services.retry import retry_async

logger = logging.getLogger(__name__)


class MoodInferenceClient:
    """Classifies free text into an emotion label"""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None, sleep=None):
        self.settings = settings
        self._transport = transport
        self._sleep = sleep

    async def _classify(self, client: httpx.AsyncClient, model: str, text: str) -> Any:
        url = f"{self.settings.inference_base_url}/{model}"

        async def call():
            response = await client.post(url, json={"inputs": text})
            response.raise_for_status()
            return response.json()

        kwargs = {}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        return await retry_async(
            call,
            max_attempts=self.settings.inference_max_attempts,
            backoff=self.settings.inference_backoff,
            description=f"inference {model}",
            **kwargs
        )

    async def detect(self, text: str) -> Tuple[Optional[str], Optional[str]]:
        """
        Top label for text and the model that produced it.

        Returns (None, None) when the API key is missing or neither model
        yields a usable label, so the caller falls back to the default mood.
        """
        if not self.settings.huggingface_api_key:
            logger.warning("HUGGINGFACE_API_KEY not set, skipping mood inference")
            return None, None

        headers = {
            "Authorization": f"Bearer {self.settings.huggingface_api_key}",
            "Content-Type": "application/json",
        }
        async with httpx.AsyncClient(
            headers=headers,
            timeout=self.settings.inference_timeout,
            transport=self._transport
        ) as client:
            try:
                emotion = await self._classify(client, self.settings.emotion_model, text)
                label = pick_top_label(emotion)
                if label:
                    return label, self.settings.emotion_model
                logger.info("Emotion model returned no usable label, trying sentiment model")
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"Emotion model failed: {e}")

            try:
                sentiment = await self._classify(client, self.settings.sentiment_model, text)
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"Sentiment model failed: {e}")
                return None, None

            label = pick_top_label(sentiment)
            return (label, self.settings.sentiment_model) if label else (None, None)
