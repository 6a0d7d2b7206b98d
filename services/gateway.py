# User value: This file runs every document and outfit tool behind one interface so users always get a result or a clear error.
import logging
import threading
import time
from typing import Any, Callable, Optional, Sequence

from schemas.job_contract import (
    ERROR_EMPTY_DOCUMENT,
    ERROR_EXTRACTION_FAILURE,
    ERROR_INVALID_INPUT_TYPE,
    ERROR_MODEL_FAILURE,
    ERROR_VALIDATION_FAILURE,
    JOB_KIND_CONVERT_FROM_IMAGES,
    JOB_KIND_CONVERT_TO_IMAGES,
    JOB_KIND_DETECT_OUTFIT,
    JOB_KIND_NARRATE,
    JOB_KIND_SUMMARIZE,
    JOB_KIND_TRANSLATE,
    NARRATION_TEXT_BUDGET,
    PDF_MIME,
    TRANSLATION_TEXT_BUDGET,
)
from services import pdf_tools
from services.audio import pcm_to_wav
from services.genai_client import GenAIClient, GenAIError, inline_part
from services.payload_codec import (
    PayloadError,
    decode_payload,
    encode_payload,
    is_url_reference,
    is_valid_remote_url,
    payload_mime,
    truncate_text,
    url_from_reference,
)
from services.remote_fetch import fetch_document
from services.results import OperationResult
from services.voices import get_voice
from utils.metrics import incr, observe_ms

logger = logging.getLogger("api.gateway")

WAV_MIME = "audio/wav"
PNG_MIME = "image/png"
PAGE_DELIMITER = "\n\n"

SUMMARIZE_PROMPT = (
    "You are an expert at summarizing documents. "
    "Please provide a concise summary of the following document:\n\n"
)
TRANSLATE_PROMPT = (
    "Translate the following text into {target_language}. "
    "Do not add any extra commentary, just provide the translated text. "
    "Keep blank lines between paragraphs.\n\nText to translate:\n---\n{text}\n---\n"
)
VOICE_SAMPLE_TEXT = "Hello, I am {name}. This is what my voice sounds like."
DETECT_PROMPT = (
    "You are an AI fashion assistant that analyzes images of outfits and identifies individual clothing items. "
    "For each clothing item in the image return its type (e.g. shirt, pants, hat, shoes), a detailed description "
    "including color, style and notable features, and its bounding box as box_2d = [ymin, xmin, ymax, xmax] "
    "normalized to 0-1000. Return an empty array when no clothing is visible."
)
SHOPPING_PROMPT = (
    "You are a personal shopping assistant. Given a list of clothing items, find similar items on e-commerce "
    "websites and provide links to purchase them. Prioritize Shopee, but include other e-commerce platforms if "
    "the item is not available on Shopee. Return one suggestion per item and copy each item's id into item_id.\n\n"
    "Clothing items:\n"
)

DETECTION_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "item_type": {"type": "STRING"},
            "description": {"type": "STRING"},
            "box_2d": {"type": "ARRAY", "items": {"type": "NUMBER"}},
        },
        "required": ["item_type", "description", "box_2d"],
    },
}

SHOPPING_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "suggestions": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "item_id": {"type": "STRING"},
                    "item": {"type": "STRING"},
                    "description": {"type": "STRING"},
                    "ecommerce_links": {
                        "type": "ARRAY",
                        "items": {
                            "type": "OBJECT",
                            "properties": {"platform": {"type": "STRING"}, "url": {"type": "STRING"}},
                            "required": ["platform", "url"],
                        },
                    },
                },
                "required": ["item_id", "item", "description", "ecommerce_links"],
            },
        }
    },
    "required": ["suggestions"],
}


class OperationFailed(Exception):
    """Expected failure inside an operation; converted to a result at the gateway boundary."""

    def __init__(self, error_kind: str, message: str, **details: Any):
        super().__init__(message)
        self.error_kind = error_kind
        self.message = message
        self.details = details


class OperationGateway:
    def __init__(
        self,
        model: Optional[GenAIClient] = None,
        documents=pdf_tools,
        fetcher: Callable[[str, str], OperationResult] = fetch_document,
    ):
        self.model = model or GenAIClient()
        self.documents = documents
        self.fetcher = fetcher

    # ---------------------------------------------------------
    # BOUNDARY
    # ---------------------------------------------------------
    def _guard(self, operation: str, func: Callable[..., Any], *args: Any) -> OperationResult:
        started = time.perf_counter()
        try:
            result = OperationResult.success(func(*args))
        except OperationFailed as exc:
            result = OperationResult.failure(exc.error_kind, exc.message, **exc.details)
        except GenAIError as exc:
            logger.warning("gateway_model_failed operation=%s error=%s", operation, exc)
            result = OperationResult.failure(ERROR_MODEL_FAILURE, "The AI model did not return a usable result")
        except pdf_tools.ExtractionError as exc:
            result = OperationResult.failure(ERROR_EXTRACTION_FAILURE, str(exc))
        except pdf_tools.DocumentError as exc:
            logger.info("gateway_document_rejected operation=%s error=%s", operation, exc)
            result = OperationResult.failure(ERROR_INVALID_INPUT_TYPE, str(exc))

        duration_ms = (time.perf_counter() - started) * 1000.0
        outcome = "ok" if result.ok else result.error_kind
        incr("gateway_operations_total", operation=operation, outcome=outcome)
        observe_ms("gateway_operation_latency_ms", duration_ms, operation=operation)
        logger.info("gateway_operation operation=%s outcome=%s duration_ms=%.1f", operation, outcome, duration_ms)
        return result

    # ---------------------------------------------------------
    # PAYLOAD RESOLUTION
    # ---------------------------------------------------------
    def _resolve(self, payload: str, expected_mime: str) -> bytes:
        if is_url_reference(payload):
            if expected_mime != PDF_MIME:
                raise OperationFailed(ERROR_INVALID_INPUT_TYPE, "Links are only supported for PDF documents")
            fetched = self.fetcher(url_from_reference(payload), expected_mime)
            if not fetched.ok:
                raise OperationFailed(fetched.error_kind, fetched.message, **fetched.details)
            return fetched.value[1]

        try:
            mime, data = decode_payload(payload)
        except PayloadError as exc:
            raise OperationFailed(ERROR_INVALID_INPUT_TYPE, str(exc)) from exc

        if expected_mime.endswith("/*"):
            matches = mime.split("/", 1)[0] == expected_mime[:-2]
        else:
            matches = mime == expected_mime
        if not matches:
            raise OperationFailed(ERROR_INVALID_INPUT_TYPE, f"Expected {expected_mime} input, got {mime}")
        return data

    def _document_pages(self, payload: str) -> list[str]:
        return self.documents.extract_pages(self._resolve(payload, PDF_MIME))

    @staticmethod
    def _join(pages: Sequence[str]) -> str:
        return "\n".join(p.strip() for p in pages if p.strip())

    def _speak(self, text: str, voice_id: str) -> str:
        voice = get_voice(voice_id)
        if voice is None:
            raise OperationFailed(ERROR_VALIDATION_FAILURE, f"Unknown voice: {voice_id}")
        pcm = self.model.synthesize_speech(text, voice.model_voice)
        if not pcm:
            raise OperationFailed(ERROR_MODEL_FAILURE, "Audio generation failed. No media was returned.")
        return encode_payload(pcm_to_wav(pcm), WAV_MIME)

    # ---------------------------------------------------------
    # OPERATIONS
    # ---------------------------------------------------------
    def _summarize(self, payload: str) -> dict:
        pages = self._document_pages(payload)
        summary = self.model.generate_text(SUMMARIZE_PROMPT + self._join(pages))
        if not summary:
            raise OperationFailed(ERROR_MODEL_FAILURE, "Could not generate summary.")
        return {"summary_text": summary, "page_count": len(pages)}

    def _translate(self, payload: str, target_language: str) -> dict:
        language = str(target_language or "").strip()
        if not language:
            raise OperationFailed(ERROR_VALIDATION_FAILURE, "A target language is required")
        text = truncate_text(self._join(self._document_pages(payload)), TRANSLATION_TEXT_BUDGET)
        translated = self.model.generate_text(TRANSLATE_PROMPT.format(target_language=language, text=text))
        if not translated:
            raise OperationFailed(ERROR_MODEL_FAILURE, "Could not generate translation.")

        # One output page per blank-line separated block, no reflow.
        blocks = [block.strip() for block in translated.split(PAGE_DELIMITER) if block.strip()]
        document = self.documents.render_text_document(blocks)
        return {
            "translated_document": encode_payload(document, PDF_MIME),
            "translated_text": translated,
            "target_language": language,
            "page_count": len(blocks),
        }

    def _narrate(self, payload: str, voice_id: str) -> dict:
        if get_voice(voice_id) is None:
            raise OperationFailed(ERROR_VALIDATION_FAILURE, f"Unknown voice: {voice_id}")
        full_text = self._join(self._document_pages(payload))
        text = truncate_text(full_text, NARRATION_TEXT_BUDGET)
        return {
            "audio": self._speak(text, voice_id),
            "voice_id": get_voice(voice_id).id,
            "narrated_chars": len(text),
            "truncated": len(text) < len(full_text),
        }

    def _detect_and_segment(self, image_payload: str) -> list[dict]:
        data = self._resolve(image_payload, "image/*")
        mime = payload_mime(image_payload)
        detected = self.model.generate_json(DETECT_PROMPT, DETECTION_SCHEMA, parts=[inline_part(mime, data)])
        if not isinstance(detected, list):
            raise OperationFailed(ERROR_MODEL_FAILURE, "Outfit detection returned an unexpected shape")

        items = []
        for index, entry in enumerate(detected, start=1):
            if not isinstance(entry, dict):
                continue
            try:
                segmented = encode_payload(self.documents.crop_image(data, entry.get("box_2d") or []), PNG_MIME)
            except (pdf_tools.ImageError, TypeError, ValueError) as exc:
                # Keep the item and show the full photo when the box is unusable.
                logger.info("gateway_segment_fallback item=%s error=%s", index, exc)
                segmented = image_payload
            items.append(
                {
                    "item_id": f"item-{index}",
                    "item_type": str(entry.get("item_type") or "item"),
                    "description": str(entry.get("description") or entry.get("item_type") or "clothing item"),
                    "segmented_image": segmented,
                }
            )
        return items

    @staticmethod
    def _normalize_items(items: Sequence[Any]) -> list[dict]:
        normalized = []
        for index, item in enumerate(items, start=1):
            if isinstance(item, str):
                item_id, description = f"item-{index}", item
            elif isinstance(item, dict):
                item_id = str(item.get("item_id") or f"item-{index}")
                description = str(item.get("description") or "")
            else:
                raise OperationFailed(ERROR_VALIDATION_FAILURE, "Items must be descriptions or {item_id, description}")
            if not description.strip():
                raise OperationFailed(ERROR_VALIDATION_FAILURE, f"Item {item_id} has no description")
            normalized.append({"item_id": item_id, "description": description.strip()})
        if len({i["item_id"] for i in normalized}) != len(normalized):
            raise OperationFailed(ERROR_VALIDATION_FAILURE, "Item ids must be unique")
        return normalized

    def _shopping_suggestions(self, items: Sequence[Any]) -> list[dict]:
        normalized = self._normalize_items(items)
        if not normalized:
            return []

        listing = "\n".join(f"- [{i['item_id']}] {i['description']}" for i in normalized)
        response = self.model.generate_json(SHOPPING_PROMPT + listing, SHOPPING_SCHEMA)
        raw = response.get("suggestions") if isinstance(response, dict) else None
        if not isinstance(raw, list):
            raise OperationFailed(ERROR_MODEL_FAILURE, "Shopping suggestions returned an unexpected shape")

        # Correlate by item_id; the model may reorder or drop entries.
        by_id = {}
        for suggestion in raw:
            if isinstance(suggestion, dict) and suggestion.get("item_id") and suggestion["item_id"] not in by_id:
                by_id[str(suggestion["item_id"])] = suggestion

        results = []
        for item in normalized:
            suggestion = by_id.get(item["item_id"], {})
            links = [
                {"platform": str(link.get("platform") or ""), "url": str(link["url"])}
                for link in suggestion.get("ecommerce_links") or []
                if isinstance(link, dict) and is_valid_remote_url(link.get("url"))
            ]
            results.append(
                {
                    "item_id": item["item_id"],
                    "item": str(suggestion.get("item") or item["description"]),
                    "description": str(suggestion.get("description") or ""),
                    "ecommerce_links": links,
                }
            )
        missing = [i["item_id"] for i in normalized if i["item_id"] not in by_id]
        if missing:
            logger.info("gateway_suggestions_missing item_ids=%s", ",".join(missing))
        return results

    def _detect_outfit(self, image_payload: str) -> dict:
        items = self._detect_and_segment(image_payload)
        if not items:
            return {"items": []}
        suggestions = {s["item_id"]: s for s in self._shopping_suggestions(items)}
        return {"items": [{**item, "suggestion": suggestions[item["item_id"]]} for item in items]}

    def _convert_to_images(self, payload: str) -> dict:
        pngs = self.documents.render_pages(self._resolve(payload, PDF_MIME))
        if not pngs:
            raise OperationFailed(ERROR_EMPTY_DOCUMENT, "The document has no pages")
        return {"images": [encode_payload(png, PNG_MIME) for png in pngs], "page_count": len(pngs)}

    def _convert_from_images(self, image_payloads: Sequence[str]) -> dict:
        if not image_payloads:
            raise OperationFailed(ERROR_VALIDATION_FAILURE, "At least one image is required")
        images = [self._resolve(payload, "image/*") for payload in image_payloads]
        document = self.documents.compose_from_images(images)
        return {"document": encode_payload(document, PDF_MIME), "page_count": len(images)}

    def _voice_sample(self, voice_id: str, name: Optional[str] = None) -> dict:
        voice = get_voice(voice_id)
        if voice is None:
            raise OperationFailed(ERROR_VALIDATION_FAILURE, f"Unknown voice: {voice_id}")
        text = VOICE_SAMPLE_TEXT.format(name=str(name or "").strip() or voice.name)
        return {"audio": self._speak(text, voice.id), "voice_id": voice.id}

    def _extract_full_text(self, payload: str) -> dict:
        pages = self._document_pages(payload)
        return {
            "pages": [{"page_number": n, "text": text.strip()} for n, text in enumerate(pages, start=1)],
            "total_pages": len(pages),
        }

    # ---------------------------------------------------------
    # PUBLIC API
    # ---------------------------------------------------------
    def summarize(self, payload: str) -> OperationResult:
        return self._guard("summarize", self._summarize, payload)

    def translate(self, payload: str, target_language: str) -> OperationResult:
        return self._guard("translate", self._translate, payload, target_language)

    def narrate(self, payload: str, voice_id: str) -> OperationResult:
        return self._guard("narrate", self._narrate, payload, voice_id)

    def detect_and_segment(self, image_payload: str) -> OperationResult:
        return self._guard("detect_and_segment", self._detect_and_segment, image_payload)

    def shopping_suggestions(self, items: Sequence[Any]) -> OperationResult:
        return self._guard("shopping_suggestions", self._shopping_suggestions, items)

    def detect_outfit(self, image_payload: str) -> OperationResult:
        return self._guard("detect_outfit", self._detect_outfit, image_payload)

    def convert_to_images(self, payload: str) -> OperationResult:
        return self._guard("convert_to_images", self._convert_to_images, payload)

    def convert_from_images(self, image_payloads: Sequence[str]) -> OperationResult:
        return self._guard("convert_from_images", self._convert_from_images, image_payloads)

    def voice_sample(self, voice_id: str, name: Optional[str] = None) -> OperationResult:
        return self._guard("voice_sample", self._voice_sample, voice_id, name)

    def extract_full_text(self, payload: str) -> OperationResult:
        return self._guard("extract_full_text", self._extract_full_text, payload)

    def run(self, kind: str, inputs: Sequence[str], params: Optional[dict] = None) -> OperationResult:
        """Dispatch a job kind to its operation."""
        params = params or {}
        if kind == JOB_KIND_CONVERT_FROM_IMAGES:
            return self.convert_from_images(list(inputs))
        if not inputs:
            return OperationResult.failure(ERROR_VALIDATION_FAILURE, "The job holds no input")
        payload = inputs[0]
        if kind == JOB_KIND_SUMMARIZE:
            return self.summarize(payload)
        if kind == JOB_KIND_TRANSLATE:
            return self.translate(payload, params.get("target_language"))
        if kind == JOB_KIND_NARRATE:
            return self.narrate(payload, params.get("voice_id"))
        if kind == JOB_KIND_DETECT_OUTFIT:
            return self.detect_outfit(payload)
        if kind == JOB_KIND_CONVERT_TO_IMAGES:
            return self.convert_to_images(payload)
        raise ValueError(f"Unknown job kind: {kind}")


_gateway: Optional[OperationGateway] = None
_gateway_lock = threading.Lock()


def get_gateway() -> OperationGateway:
    global _gateway
    with _gateway_lock:
        if _gateway is None:
            _gateway = OperationGateway()
        return _gateway
