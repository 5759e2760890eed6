"""
Audio utility functions for the chatbox translator.
"""

import io
import logging
import wave
import numpy as np
from scipy import signal
import typing as t


logger = logging.getLogger(__name__)

BIT_DEPTH_DIVISOR = 32768.0  # Used for normalizing 16-bit audio


def int16_to_float(data: bytes) -> np.ndarray:
    """Convert raw 16-bit PCM bytes to float32 samples in [-1, 1]."""
    return np.frombuffer(data, dtype=np.int16).astype(np.float32) / BIT_DEPTH_DIVISOR


def float_to_int16(audio: np.ndarray) -> np.ndarray:
    """Convert float samples in [-1, 1] to clipped 16-bit PCM."""
    clipped = np.clip(audio, -1.0, 1.0)
    return (clipped * (BIT_DEPTH_DIVISOR - 1)).astype(np.int16)


def peak_amplitude(audio: np.ndarray) -> float:
    """Largest absolute sample value, 0.0 for an empty block."""
    if audio.size == 0:
        return 0.0
    return float(np.max(np.abs(audio)))


def normalize_audio(audio: np.ndarray) -> np.ndarray:
    """
    Normalize audio to a peak amplitude of 0.9.

    Args:
        audio: numpy array of audio data

    Returns:
        Normalized audio
    """
    peak = peak_amplitude(audio)
    if peak > 0:
        return audio / peak * 0.9
    return audio


def apply_highpass_filter(audio: np.ndarray, sample_rate: int, cutoff: int = 100) -> np.ndarray:
    """
    Apply a high-pass filter to remove low-frequency noise.

    Args:
        audio: numpy array of audio data
        sample_rate: audio sample rate in Hz
        cutoff: cutoff frequency in Hz

    Returns:
        Filtered audio
    """
    sos = signal.butter(2, cutoff, 'hp', fs=sample_rate, output='sos')
    return signal.sosfilt(sos, audio)


def encode_wav(audio: np.ndarray, sample_rate: int) -> bytes:
    """Encode float samples as a mono 16-bit WAV file in memory."""
    buffer = io.BytesIO()
    with wave.open(buffer, 'wb') as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)  # 2 bytes for int16
        wf.setframerate(sample_rate)
        wf.writeframes(float_to_int16(audio).tobytes())
    return buffer.getvalue()


def get_audio_input_devices() -> t.Dict[str, t.Optional[int]]:
    """
    Retrieves a dictionary of available audio input devices.

    Returns:
        A dictionary mapping device names (with host API) to their indices.
        Includes a "System Default" option mapping to None.
    """
    devices = {"System Default": None}
    try:
        import pyaudio
        p = pyaudio.PyAudio()
    except Exception as e:
        logger.error(f"Could not initialize PyAudio: {e}")
        return devices

    try:
        for i in range(p.get_device_count()):
            device_info = p.get_device_info_by_index(i)
            if device_info.get('maxInputChannels') > 0:
                device_name = device_info.get('name')
                host_api = p.get_host_api_info_by_index(device_info.get('hostApi')).get('name')
                full_name = f"{device_name} ({host_api})"
                devices[full_name] = i
                logger.debug(f"Found input device: index={i}, name='{full_name}'")
    except Exception as e:
        logger.error(f"Could not enumerate audio devices: {e}", exc_info=True)
        return {"System Default": None}
    finally:
        p.terminate()
    return devices
