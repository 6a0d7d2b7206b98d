# User value: This file lets operators switch optional document-tool behavior on or off without a redeploy.
import os

BOOL_TRUE = {"1", "true", "yes", "on"}
BOOL_FALSE = {"0", "false", "no", "off"}


# User value: supports _flag so optional features behave the same on every instance.
def _flag(name: str, default: bool = False) -> bool:
    raw = str(os.getenv(name, "1" if default else "0")).strip().lower()
    return raw in BOOL_TRUE


FEATURE_DOCUMENT_CACHE = _flag("FEATURE_DOCUMENT_CACHE", True)
FEATURE_URL_INPUT = _flag("FEATURE_URL_INPUT", True)
FEATURE_VOICE_SAMPLES = _flag("FEATURE_VOICE_SAMPLES", True)

FLAG_NAMES = (
    "FEATURE_DOCUMENT_CACHE",
    "FEATURE_URL_INPUT",
    "FEATURE_VOICE_SAMPLES",
)


# User value: remembers the last uploaded PDF so users can pick up where they left off.
def is_document_cache_enabled() -> bool:
    return FEATURE_DOCUMENT_CACHE


# User value: lets users summarize or translate a PDF straight from a link.
def is_url_input_enabled() -> bool:
    return FEATURE_URL_INPUT


# User value: lets users preview a narrator voice before converting a whole document.
def is_voice_samples_enabled() -> bool:
    return FEATURE_VOICE_SAMPLES
