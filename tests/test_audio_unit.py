# User value: This test makes sure narration audio plays in any browser as a standard WAV file.
import io
import unittest
import wave

from services.audio import pcm_to_wav


class AudioUnitTests(unittest.TestCase):
    def test_wav_header_uses_fixed_parameters(self):
        pcm = b"\x01\x00\xff\x7f" * 1200
        with wave.open(io.BytesIO(pcm_to_wav(pcm)), "rb") as reader:
            self.assertEqual(reader.getnchannels(), 1)
            self.assertEqual(reader.getframerate(), 24000)
            self.assertEqual(reader.getsampwidth(), 2)
            self.assertEqual(reader.getnframes(), len(pcm) // 2)
            self.assertEqual(reader.readframes(reader.getnframes()), pcm)

    def test_starts_with_riff(self):
        data = pcm_to_wav(b"\x00\x00" * 10)
        self.assertEqual(data[:4], b"RIFF")
        self.assertEqual(data[8:12], b"WAVE")


if __name__ == "__main__":
    unittest.main()
