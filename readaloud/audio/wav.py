"""PCM WAV encoding of captured audio."""

import io
import math
import struct
import wave
import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np
from scipy import signal as scipy_signal

from ..models.audio import WAV_MIME_TYPE, RAW_PCM_MIME_TYPE

logger = logging.getLogger(__name__)

WAV_HEADER_SIZE = 44


class WavDecodeError(ValueError):
    """Captured bytes could not be decoded into samples."""


@dataclass(frozen=True)
class WavHeader:
    """Fields of a canonical 44-byte RIFF/WAVE header."""
    riff_size: int
    audio_format: int
    num_channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int
    data_size: int


def decode_pcm16(audio_data: bytes) -> np.ndarray:
    """Decode little-endian 16-bit mono PCM into float samples in [-1, 1)."""
    if not audio_data:
        raise WavDecodeError("No audio bytes to decode")
    if len(audio_data) % 2:
        raise WavDecodeError(f"PCM16 data must have an even byte count, got {len(audio_data)}")
    return np.frombuffer(audio_data, dtype='<i2').astype(np.float32) / 32768.0


def quantize_pcm16(samples: np.ndarray) -> np.ndarray:
    """Clamp to [-1, 1] and scale asymmetrically onto the int16 range."""
    clipped = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 0x8000, clipped * 0x7FFF)
    return scaled.astype('<i2')


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """Encode float mono samples as a 16-bit PCM WAV byte buffer."""
    buffer = io.BytesIO()
    with wave.open(buffer, 'wb') as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(quantize_pcm16(samples).tobytes())
    return buffer.getvalue()


def read_wav_header(wav_data: bytes) -> WavHeader:
    """Parse the canonical header written by :func:`encode_wav`."""
    if len(wav_data) < WAV_HEADER_SIZE:
        raise WavDecodeError(f"Buffer too short for a WAV header: {len(wav_data)} bytes")

    (riff, riff_size, wave_id, fmt_id, fmt_size, audio_format, num_channels,
     sample_rate, byte_rate, block_align, bits_per_sample,
     data_id, data_size) = struct.unpack_from('<4sI4s4sIHHIIHH4sI', wav_data, 0)

    if riff != b'RIFF' or wave_id != b'WAVE' or fmt_id != b'fmt ' or data_id != b'data':
        raise WavDecodeError("Not a canonical PCM WAV buffer")

    return WavHeader(
        riff_size=riff_size,
        audio_format=audio_format,
        num_channels=num_channels,
        sample_rate=sample_rate,
        byte_rate=byte_rate,
        block_align=block_align,
        bits_per_sample=bits_per_sample,
        data_size=data_size,
    )


class WavEncoder:
    """Turns a raw capture into the clip sent for scoring."""

    def __init__(self, target_rate: int = 16000):
        self.target_rate = target_rate

    def resample(self, samples: np.ndarray, source_rate: int) -> np.ndarray:
        if source_rate == self.target_rate:
            return samples
        divisor = math.gcd(source_rate, self.target_rate)
        up, down = self.target_rate // divisor, source_rate // divisor
        logger.debug(f"Resampling {source_rate}Hz -> {self.target_rate}Hz (up={up}, down={down})")
        return scipy_signal.resample_poly(samples, up, down)

    def encode(self, audio_data: bytes, source_rate: int) -> Tuple[bytes, str]:
        """Encode a raw PCM16 capture as WAV.

        If the capture cannot be decoded, the original bytes are returned
        unchanged with their raw mime type, so callers must accept either.

        Returns:
            Tuple of (audio bytes, mime type)
        """
        try:
            samples = decode_pcm16(audio_data)
        except WavDecodeError as e:
            logger.warning(f"WAV conversion failed, forwarding original capture: {e}")
            return audio_data, RAW_PCM_MIME_TYPE

        samples = self.resample(samples, source_rate)
        wav_data = encode_wav(samples, self.target_rate)
        logger.debug(f"Encoded {len(samples)} samples to WAV ({len(wav_data)} bytes)")
        return wav_data, WAV_MIME_TYPE
