"""
Speech detection functionality for the chatbox translator.
Cuts a continuous stream of audio blocks into utterances using a noise gate
and a silence-duration heuristic.
"""

import logging
import queue
import time
from collections import deque
import numpy as np
from chatbox_translator.models.audio_segment import AudioSegment
from chatbox_translator.utils.audio_utils import peak_amplitude
from chatbox_translator.utils.error_handling import log_exceptions


class NoiseGate:
    """
    Amplitude gate with a hold time.

    Positions are sample counts, so the gate behaves the same whether blocks
    come from a live device or from a test signal.
    """

    def __init__(self, threshold, hold_time, sample_rate):
        self.threshold = threshold
        self.hold_samples = int(round(hold_time * sample_rate))
        self.last_active = 0
        self.is_active = False

    def reset(self):
        self.last_active = 0
        self.is_active = False

    def update(self, peak, position):
        """
        Feed the peak amplitude of the block ending at ``position``.

        Returns:
            True while the gate is open
        """
        if peak > self.threshold:
            self.last_active = position
            self.is_active = True
        elif self.is_active and position - self.last_active > self.hold_samples:
            self.is_active = False
        return self.is_active


class SpeechDetector:
    """Detects utterances in audio input and turns them into AudioSegments."""
    # How long the detection loop waits for a block before re-checking termination
    QUEUE_POLL_TIMEOUT = 0.1

    def __init__(self, settings, on_speech_start=None, on_speech_end=None):
        """
        Initialize the speech detector with the given settings.

        Args:
            settings: Settings instance
            on_speech_start: Optional callback invoked when the gate opens an utterance
            on_speech_end: Optional callback invoked when an utterance closes (kept or not)
        """
        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self.on_speech_start = on_speech_start
        self.on_speech_end = on_speech_end
        self.segment_counter = 0
        self.reset()

    def reset(self):
        """Drop any partial utterance and start detecting from a clean state."""
        rate = self.settings.sample_rate
        self.gate = NoiseGate(self.settings.noise_gate_threshold, self.settings.noise_gate_hold_time, rate)
        self.silence_samples = int(round(self.settings.silence_threshold / 1000.0 * rate))
        self.max_samples = int(round(self.settings.max_segment_duration * rate))
        self.pre_padding_samples = int(round(self.settings.pre_padding * rate))
        self.start_time = time.time()

        self._samples_seen = 0
        self._is_speaking = False
        self._utterance_start = 0
        self._frames = []
        self._envelope = []
        self._utterance_samples = 0
        self._tail = []
        self._tail_samples = 0
        self._preroll = deque()
        self._preroll_samples = 0

    @property
    def is_speaking(self):
        return self._is_speaking

    def iter_segments(self, blocks):
        """
        Lazily yield AudioSegments from an iterable of sample blocks.

        Each call restarts detection from a clean state. An utterance still
        open when the blocks run out is flushed.
        """
        self.reset()
        for block in blocks:
            segment = self.process_block(block)
            if segment is not None:
                yield segment
        segment = self.flush()
        if segment is not None:
            yield segment

    def process_block(self, block):
        """
        Feed one block of mono float samples.

        Returns:
            An AudioSegment when this block closes an utterance long enough to
            transcribe, otherwise None
        """
        block = np.asarray(block, dtype=np.float32).ravel()
        if block.size == 0:
            return None

        block_start = self._samples_seen
        self._samples_seen += block.size
        peak = peak_amplitude(block)
        gate_open = self.gate.update(peak, self._samples_seen)

        if not self._is_speaking:
            if gate_open:
                self._start_utterance(block_start)
                self._append(block, peak)
                return self._close_if_too_long()
            self._remember_preroll(block, peak)
            return None

        if gate_open:
            # Short pause: the gate re-opened before the silence threshold
            for held_block, held_peak in self._tail:
                self._append(held_block, held_peak)
            self._tail = []
            self._tail_samples = 0
            self._append(block, peak)
            return self._close_if_too_long()

        self._tail.append((block, peak))
        self._tail_samples += block.size
        if self._tail_samples >= self.silence_samples:
            return self._close_utterance("silence")
        return None

    def flush(self):
        """Close the open utterance, if any, as if the input had ended."""
        if not self._is_speaking:
            return None
        segment = self._close_utterance("end of input")
        self.gate.reset()
        return segment

    @log_exceptions
    def start_detection(self, frame_queue, segment_handler, termination_event):
        """
        Consume audio blocks until termination is requested.

        Args:
            frame_queue: Queue of float32 blocks filled by the capture thread
            segment_handler: Callable receiving each AudioSegment
            termination_event: Event to signal thread termination
        """
        self.reset()
        self.logger.info("Speech detection started")
        try:
            while not termination_event.is_set():
                try:
                    block = frame_queue.get(timeout=self.QUEUE_POLL_TIMEOUT)
                except queue.Empty:
                    continue
                segment = self.process_block(block)
                if segment is not None:
                    segment_handler(segment)
        finally:
            if self._is_speaking:
                self.logger.info("Discarding unfinished utterance on shutdown")
                self._notify(self.on_speech_end)
            self.reset()
            self.logger.info("Speech detection stopped")

    def _start_utterance(self, block_start):
        self._is_speaking = True
        self._frames = []
        self._envelope = []
        self._utterance_samples = 0
        self._utterance_start = block_start - self._preroll_samples
        for held_block, held_peak in self._preroll:
            self._append(held_block, held_peak)
        self._preroll.clear()
        self._preroll_samples = 0
        self.logger.debug(f"Speech detected at {self._samples_position_seconds(block_start):.2f}s")
        self._notify(self.on_speech_start)

    def _append(self, block, peak):
        self._frames.append(block)
        self._envelope.append(peak)
        self._utterance_samples += block.size

    def _remember_preroll(self, block, peak):
        if self.pre_padding_samples <= 0:
            return
        self._preroll.append((block, peak))
        self._preroll_samples += block.size
        # Keep only as much audio as the pre-padding needs
        while self._preroll and self._preroll_samples - self._preroll[0][0].size >= self.pre_padding_samples:
            dropped, _ = self._preroll.popleft()
            self._preroll_samples -= dropped.size

    def _close_if_too_long(self):
        if self.max_samples > 0 and self._utterance_samples >= self.max_samples:
            return self._close_utterance("max length")
        return None

    def _close_utterance(self, reason):
        rate = self.settings.sample_rate
        audio = np.concatenate(self._frames) if self._frames else np.zeros(0, dtype=np.float32)
        envelope = np.asarray(self._envelope, dtype=np.float32)
        start = self._utterance_start
        tail = self._tail

        self._is_speaking = False
        self._frames = []
        self._envelope = []
        self._utterance_samples = 0
        self._tail = []
        self._tail_samples = 0
        # Trailing silence can serve as pre-padding for the next utterance
        for held_block, held_peak in tail:
            self._remember_preroll(held_block, held_peak)

        self._notify(self.on_speech_end)

        duration = len(audio) / float(rate)
        if duration < self.settings.min_transcription_duration:
            self.logger.debug(
                f"Utterance too short ({duration:.2f}s < {self.settings.min_transcription_duration:.2f}s), "
                f"discarded")
            return None

        segment = AudioSegment(
            audio_data=audio,
            sample_rate=rate,
            timestamp=self.start_time + start / float(rate),
            segment_id=self.segment_counter,
            envelope=envelope,
        )
        self.segment_counter += 1
        self.logger.info(f"Utterance boundary detected ({reason}), segment #{segment.segment_id} "
                         f"of {duration:.2f}s")
        return segment

    def _samples_position_seconds(self, position):
        return position / float(self.settings.sample_rate)

    def _notify(self, callback):
        if callback is None:
            return
        try:
            callback()
        except Exception as e:
            self.logger.error(f"Error in speech detector callback: {e}", exc_info=True)
