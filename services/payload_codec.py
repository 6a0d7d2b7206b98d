# User value: This file turns uploaded bytes into one self-describing payload that every document tool understands.
import base64
import binascii
import re
from urllib.parse import urlsplit

URL_REFERENCE_PREFIX = "url:"

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+*-]+)(?P<params>(?:;[\w.+-]+=[^;,]*)*);base64,(?P<data>.*)$", re.DOTALL)


class PayloadError(ValueError):
    pass


# User value: packs file bytes so they can travel to the remote tools unchanged.
def encode_payload(data: bytes, mime: str) -> str:
    mime_n = str(mime or "").strip().lower() or "application/octet-stream"
    return f"data:{mime_n};base64,{base64.b64encode(data).decode('ascii')}"


def decode_payload(payload: str) -> tuple[str, bytes]:
    match = _DATA_URI_RE.match(str(payload or "").strip())
    if not match:
        raise PayloadError("Payload is not a base64 data URI")
    try:
        data = base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise PayloadError("Payload contains invalid base64 data") from exc
    return match.group("mime").lower(), data


def payload_mime(payload: str) -> str | None:
    match = _DATA_URI_RE.match(str(payload or "").strip())
    return match.group("mime").lower() if match else None


def is_url_reference(payload: str | None) -> bool:
    return str(payload or "").startswith(URL_REFERENCE_PREFIX)


def is_valid_remote_url(url: str | None) -> bool:
    try:
        parts = urlsplit(str(url or "").strip())
    except ValueError:
        return False
    return parts.scheme in {"http", "https"} and bool(parts.netloc)


def make_url_reference(url: str) -> str:
    if not is_valid_remote_url(url):
        raise PayloadError(f"Not a valid http(s) URL: {url}")
    return f"{URL_REFERENCE_PREFIX}{str(url).strip()}"


def url_from_reference(payload: str) -> str:
    if not is_url_reference(payload):
        raise PayloadError("Payload is not a url: reference")
    return payload[len(URL_REFERENCE_PREFIX):]


# User value: keeps long documents within what the narration and translation models accept.
def truncate_text(text: str, budget: int) -> str:
    # Lossy on purpose: characters past the budget are dropped, not summarized.
    if budget < 0:
        raise ValueError("budget must be >= 0")
    return text[:budget]
