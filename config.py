import os
from dotenv import load_dotenv

load_dotenv()

GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
GEMINI_API_BASE = os.environ.get("GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta").rstrip("/")
GEMINI_TEXT_MODEL = os.environ.get("GEMINI_TEXT_MODEL", "gemini-2.5-flash")
GEMINI_TTS_MODEL = os.environ.get("GEMINI_TTS_MODEL", "gemini-2.5-flash-preview-tts")
GENAI_TIMEOUT_SEC = float(os.environ.get("GENAI_TIMEOUT_SEC", "120"))

REMOTE_FETCH_TIMEOUT_SEC = float(os.environ.get("REMOTE_FETCH_TIMEOUT_SEC", "30"))
MAX_REMOTE_DOCUMENT_MB = int(os.environ.get("MAX_REMOTE_DOCUMENT_MB", "25"))

MAX_UPLOAD_FILE_SIZE_MB = int(os.environ.get("MAX_UPLOAD_FILE_SIZE_MB", "25"))
MAX_UPLOAD_FILE_SIZE_BYTES = MAX_UPLOAD_FILE_SIZE_MB * 1024 * 1024

PAGE_RENDER_DPI = int(os.environ.get("PAGE_RENDER_DPI", "110"))

DOCUMENT_CACHE_BACKEND = os.environ.get("DOCUMENT_CACHE_BACKEND", "memory").strip().lower() or "memory"
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
