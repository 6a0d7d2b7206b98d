import io
import wave

WAV_CHANNELS = 1
WAV_SAMPLE_RATE = 24000
WAV_SAMPLE_WIDTH_BYTES = 2  # 16-bit


def pcm_to_wav(
    pcm: bytes,
    *,
    channels: int = WAV_CHANNELS,
    sample_rate: int = WAV_SAMPLE_RATE,
    sample_width: int = WAV_SAMPLE_WIDTH_BYTES,
) -> bytes:
    """Wrap raw little-endian PCM in a RIFF/WAVE container."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as writer:
        writer.setnchannels(channels)
        writer.setsampwidth(sample_width)
        writer.setframerate(sample_rate)
        writer.writeframes(pcm)
    return buf.getvalue()
