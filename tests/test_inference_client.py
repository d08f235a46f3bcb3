"""Tests for the mood inference client against a mocked inference API."""

import asyncio
import json

import httpx

from soundnest.config import Settings
from soundnest.services.inference_client import MoodInferenceClient

SETTINGS = Settings(
    huggingface_api_key="hf_test",
    inference_base_url="https://inference.test/models",
    emotion_model="emotion-model",
    sentiment_model="sentiment-model",
    inference_max_attempts=2,
    inference_backoff=0.01,
)


async def no_sleep(delay):
    return None


def make_client(handler, settings=SETTINGS):
    return MoodInferenceClient(settings, transport=httpx.MockTransport(handler), sleep=no_sleep)


def test_emotion_model_label_is_used():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[[{"label": "joy", "score": 0.91}, {"label": "sadness", "score": 0.09}]])

    label, model = asyncio.run(make_client(handler).detect("what a great day"))

    assert (label, model) == ("joy", "emotion-model")
    assert len(seen) == 1
    assert seen[0].url.path == "/models/emotion-model"
    assert seen[0].headers["Authorization"] == "Bearer hf_test"
    assert json.loads(seen[0].content) == {"inputs": "what a great day"}


def test_falls_back_to_sentiment_when_emotion_model_fails():
    calls = {"emotion-model": 0, "sentiment-model": 0}

    def handler(request):
        model = request.url.path.rsplit("/", 1)[-1]
        calls[model] += 1
        if model == "emotion-model":
            return httpx.Response(503, json={"error": "Model is loading"})
        return httpx.Response(200, json=[[{"label": "NEGATIVE", "score": 0.8}, {"label": "POSITIVE", "score": 0.2}]])

    label, model = asyncio.run(make_client(handler).detect("meh"))

    assert (label, model) == ("negative", "sentiment-model")
    assert calls == {"emotion-model": 2, "sentiment-model": 1}


def test_falls_back_when_emotion_response_has_no_label():
    def handler(request):
        if request.url.path.endswith("emotion-model"):
            return httpx.Response(200, json={"error": "unexpected"})
        return httpx.Response(200, json=[{"label": "POSITIVE", "score": 0.99}])

    assert asyncio.run(make_client(handler).detect("fine")) == ("positive", "sentiment-model")


def test_both_models_failing_yields_no_label():
    def handler(request):
        return httpx.Response(500)

    assert asyncio.run(make_client(handler).detect("anything")) == (None, None)


def test_missing_api_key_skips_inference():
    def handler(request):
        raise AssertionError("no request expected without an API key")

    client = make_client(handler, SETTINGS.with_overrides(huggingface_api_key=""))
    assert asyncio.run(client.detect("anything")) == (None, None)
