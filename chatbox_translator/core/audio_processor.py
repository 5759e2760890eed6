"""
Audio processing functionality for the chatbox translator.
Handles audio capture, preprocessing and debug recordings.
"""

import logging
import os
import queue
import tempfile
import time
import numpy as np
import chatbox_translator.utils.audio_utils as audio_utils
from chatbox_translator.utils.error_handling import AudioDeviceError


class AudioProcessor:
    """Handles audio capture and processing."""
    # Audio format constants
    AUDIO_CHANNELS = 1
    BUFFER_SIZE = 1024

    # Read retry policy for transient device errors
    MAX_READ_RETRIES = 5
    INITIAL_RETRY_DELAY = 0.1  # seconds, doubled after each failure

    # Filter parameters
    DEFAULT_HIGHPASS_CUTOFF = 100  # Hz

    DEBUG_AUDIO_DIR = "debug_audio"

    def __init__(self, settings, debug_dir=None):
        """Initialize the audio processor with the given settings."""
        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self.debug_dir = debug_dir or self.DEBUG_AUDIO_DIR
        self.audio = None
        self.stream = None
        self.dropped_blocks = 0

    def start_stream(self):
        """
        Open the audio input stream.

        Raises:
            AudioDeviceError: if PyAudio is missing or the device cannot be opened
        """
        if self.stream is not None:
            self.stop_stream()

        try:
            import pyaudio
        except ImportError as e:
            raise AudioDeviceError("PyAudio is not installed; install the 'audio' extra") from e

        if self.audio is None:
            try:
                self.audio = pyaudio.PyAudio()
            except Exception as e:
                raise AudioDeviceError(f"Could not initialize PyAudio: {e}") from e

        device_index = self.settings.input_device_index
        device_info = "System Default"
        if device_index is not None:
            try:
                device_info = self.audio.get_device_info_by_index(device_index).get('name')
            except Exception:
                device_info = f"Index {device_index} (Error getting name)"

        self.logger.info(f"Attempting to start audio stream on device: {device_info} (Index: {device_index})")

        try:
            self.stream = self.audio.open(
                format=pyaudio.paInt16,
                channels=self.AUDIO_CHANNELS,
                rate=self.settings.sample_rate,
                input=True,
                frames_per_buffer=self.BUFFER_SIZE,
                input_device_index=device_index
            )
        except (IOError, OSError, ValueError) as e:
            raise AudioDeviceError(f"Could not open audio input device {device_info}: {e}") from e

        self.logger.info(f"Audio stream started successfully on device index {device_index}")
        return self.stream

    def read_block(self, termination_event=None):
        """
        Read one block from the stream, retrying transient errors with backoff.

        Returns:
            float32 samples, or None if termination was requested while backing off

        Raises:
            AudioDeviceError: once MAX_READ_RETRIES consecutive reads have failed
        """
        if self.stream is None:
            raise AudioDeviceError("Audio stream is not open")

        delay = self.INITIAL_RETRY_DELAY
        for attempt in range(1, self.MAX_READ_RETRIES + 1):
            try:
                data = self.stream.read(self.BUFFER_SIZE, exception_on_overflow=False)
                return audio_utils.int16_to_float(data)
            except (IOError, OSError) as e:
                self.logger.warning(f"Stream read error (attempt {attempt}/{self.MAX_READ_RETRIES}): {e}")
                if attempt == self.MAX_READ_RETRIES:
                    raise AudioDeviceError(f"Audio device kept failing: {e}") from e
                if termination_event is not None:
                    if termination_event.wait(delay):
                        return None
                else:
                    time.sleep(delay)
                delay *= 2
        return None

    def capture_loop(self, frame_queue, termination_event):
        """
        Read blocks into ``frame_queue`` until termination is requested.

        The queue is bounded; when it is full the oldest block is dropped so
        capture never blocks.
        """
        self.logger.info("Audio capture started")
        try:
            while not termination_event.is_set():
                block = self.read_block(termination_event)
                if block is None:
                    break
                self._put_latest(frame_queue, block)
        finally:
            self.stop_stream()
            self.logger.info("Audio capture stopped")

    def _put_latest(self, frame_queue, block):
        try:
            frame_queue.put_nowait(block)
        except queue.Full:
            try:
                frame_queue.get_nowait()
            except queue.Empty:
                pass
            self.dropped_blocks += 1
            if self.dropped_blocks % 100 == 1:
                self.logger.warning(f"Audio frame queue full, dropped {self.dropped_blocks} block(s) so far")
            frame_queue.put_nowait(block)

    def stop_stream(self):
        """Stop the audio input stream."""
        if self.stream is not None:
            try:
                if self.stream.is_active():
                    self.stream.stop_stream()
                self.stream.close()
            except Exception as e:
                self.logger.error(f"Error stopping stream: {e}")
            finally:
                self.stream = None

    def cleanup(self):
        """Release the audio device."""
        self.logger.info("Cleaning up AudioProcessor resources")
        self.stop_stream()

        if self.audio is not None:
            try:
                self.audio.terminate()
            except Exception as e:
                self.logger.error(f"Error terminating PyAudio: {e}")
            finally:
                self.audio = None

    def preprocess_audio(self, audio):
        """Normalize and high-pass filter a segment before upload."""
        if audio.dtype != np.float32:
            audio = audio.astype(np.float32)
        if audio.size == 0:
            return audio

        # Scale last, the filter can overshoot the input peak
        audio = audio_utils.apply_highpass_filter(audio, self.settings.sample_rate, self.DEFAULT_HIGHPASS_CUTOFF)
        audio = audio_utils.normalize_audio(audio)
        return audio.astype(np.float32)

    def encode_segment(self, segment):
        """Preprocess a segment and encode it as WAV bytes."""
        processed = self.preprocess_audio(segment.audio_data)
        return audio_utils.encode_wav(processed, segment.sample_rate)

    def save_debug_audio(self, segment):
        """
        Save the raw segment to a WAV file when debug mode is on.

        The file is written under a temporary name and renamed into place,
        so an interrupted write never leaves a partial recording.
        """
        if not self.settings.debug_mode:
            return None

        os.makedirs(self.debug_dir, exist_ok=True)
        filename = os.path.join(self.debug_dir, f"segment_{segment.segment_id}.wav")
        wav_bytes = audio_utils.encode_wav(segment.audio_data, segment.sample_rate)

        fd, tmp_path = tempfile.mkstemp(prefix=".segment_", suffix=".wav.tmp", dir=self.debug_dir)
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(wav_bytes)
            os.replace(tmp_path, filename)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        self.logger.info(f"Saved debug audio to {filename}")
        return filename
