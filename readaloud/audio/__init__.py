"""Audio capture, conditioning, analysis and encoding."""

from .capture import MicrophoneCapture, DeviceUnavailableError
from .filters import SignalConditioner
from .analyser import FrequencyAnalyser, VolumeSampler, rms_volume
from .wav import WavEncoder, WavDecodeError, encode_wav, read_wav_header
from .assets import load_audio_asset, AssetLoadError

__all__ = [
    'MicrophoneCapture',
    'DeviceUnavailableError',
    'SignalConditioner',
    'FrequencyAnalyser',
    'VolumeSampler',
    'rms_volume',
    'WavEncoder',
    'WavDecodeError',
    'encode_wav',
    'read_wav_header',
    'load_audio_asset',
    'AssetLoadError',
]
