# User value: This file talks to the Gemini model so users get summaries, translations, narration and outfit analysis.
import base64
import binascii
import json
import logging
import time
from typing import Any, Optional

import requests

from config import (
    GEMINI_API_BASE,
    GEMINI_API_KEY,
    GEMINI_TEXT_MODEL,
    GEMINI_TTS_MODEL,
    GENAI_TIMEOUT_SEC,
)
from utils.metrics import incr, observe_ms

logger = logging.getLogger("api.genai")


class GenAIError(RuntimeError):
    pass


def inline_part(mime: str, data: bytes) -> dict:
    return {"inline_data": {"mime_type": mime, "data": base64.b64encode(data).decode("ascii")}}


def text_part(text: str) -> dict:
    return {"text": text}


class GenAIClient:
    def __init__(
        self,
        *,
        api_key: str = GEMINI_API_KEY,
        api_base: str = GEMINI_API_BASE,
        text_model: str = GEMINI_TEXT_MODEL,
        tts_model: str = GEMINI_TTS_MODEL,
        timeout_sec: float = GENAI_TIMEOUT_SEC,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.api_base = api_base.rstrip("/")
        self.text_model = text_model
        self.tts_model = tts_model
        self.timeout_sec = timeout_sec
        self.session = session or requests.Session()

    def _endpoint(self, model: str) -> str:
        return f"{self.api_base}/models/{model}:generateContent"

    def _generate(self, model: str, parts: list[dict], generation_config: Optional[dict] = None) -> dict:
        body: dict[str, Any] = {"contents": [{"role": "user", "parts": parts}]}
        if generation_config:
            body["generationConfig"] = generation_config

        started = time.perf_counter()
        try:
            response = self.session.post(
                self._endpoint(model),
                headers={"x-goog-api-key": self.api_key, "Content-Type": "application/json"},
                json=body,
                timeout=self.timeout_sec,
            )
        except requests.RequestException as exc:
            incr("genai_requests_total", model=model, outcome="transport_error")
            raise GenAIError(f"Model request failed: {exc.__class__.__name__}") from exc
        finally:
            observe_ms("genai_request_latency_ms", (time.perf_counter() - started) * 1000.0, model=model)

        if not response.ok:
            incr("genai_requests_total", model=model, outcome=f"http_{response.status_code}")
            logger.warning("genai_http_error model=%s status=%s body=%s", model, response.status_code, response.text[:500])
            raise GenAIError(f"Model returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            incr("genai_requests_total", model=model, outcome="bad_json")
            raise GenAIError("Model response is not JSON") from exc

        incr("genai_requests_total", model=model, outcome="ok")
        return data

    @staticmethod
    def _parts(data: dict) -> list[dict]:
        candidates = data.get("candidates") or []
        if not candidates:
            feedback = data.get("promptFeedback") or {}
            raise GenAIError(f"Model returned no candidates {feedback.get('blockReason') or ''}".strip())
        content = candidates[0].get("content") or {}
        return content.get("parts") or []

    def generate_text(self, prompt: str, *, parts: Optional[list[dict]] = None) -> str:
        data = self._generate(self.text_model, [text_part(prompt), *(parts or [])])
        return "".join(p.get("text", "") for p in self._parts(data)).strip()

    def generate_json(self, prompt: str, schema: dict, *, parts: Optional[list[dict]] = None) -> Any:
        """Ask for structured output constrained by a response schema and parse it."""
        config = {"responseMimeType": "application/json", "responseSchema": schema}
        data = self._generate(self.text_model, [text_part(prompt), *(parts or [])], config)
        raw = "".join(p.get("text", "") for p in self._parts(data)).strip()
        if not raw:
            raise GenAIError("Model returned an empty structured response")
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise GenAIError("Model structured response is not valid JSON") from exc

    def synthesize_speech(self, text: str, voice: str) -> bytes:
        """Return raw 16-bit PCM for ``text`` spoken by the prebuilt ``voice``."""
        config = {
            "responseModalities": ["AUDIO"],
            "speechConfig": {"voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice}}},
        }
        data = self._generate(self.tts_model, [text_part(text)], config)
        for part in self._parts(data):
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                try:
                    return base64.b64decode(inline["data"])
                except (binascii.Error, ValueError) as exc:
                    raise GenAIError("Model returned undecodable audio") from exc
        raise GenAIError("Model returned no audio media")
