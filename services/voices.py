# User value: This file lists the narrator voices users can choose from when turning a PDF into audio.
from dataclasses import asdict, dataclass
from typing import Optional


@dataclass(frozen=True)
class Voice:
    id: str
    name: str
    gender: str
    # Prebuilt voice name passed to the speech model.
    model_voice: str


VOICES = (
    Voice(id="kore", name="Kore", gender="Female", model_voice="Kore"),
    Voice(id="puck", name="Puck", gender="Male", model_voice="Puck"),
    Voice(id="charon", name="Charon", gender="Male", model_voice="Charon"),
    Voice(id="fenrir", name="Fenrir", gender="Male", model_voice="Fenrir"),
    Voice(id="aoede", name="Aoede", gender="Female", model_voice="Aoede"),
    Voice(id="leda", name="Leda", gender="Female", model_voice="Leda"),
)

DEFAULT_VOICE_ID = VOICES[0].id

_BY_ID = {v.id: v for v in VOICES}


def get_voice(voice_id: Optional[str]) -> Optional[Voice]:
    return _BY_ID.get(str(voice_id or "").strip().lower())


def is_known_voice(voice_id: Optional[str]) -> bool:
    return get_voice(voice_id) is not None


def voice_catalog() -> list[dict]:
    return [{k: v for k, v in asdict(voice).items() if k != "model_voice"} for voice in VOICES]
