"""
Main application class for the chatbox translator.
Coordinates all components and manages the application lifecycle.
"""

import logging
import queue
import threading

from chatbox_translator.core.audio_processor import AudioProcessor
from chatbox_translator.core.chatbox import ChatboxEmitter
from chatbox_translator.core.dispatcher import Dispatcher
from chatbox_translator.core.osc_listener import OscStateListener
from chatbox_translator.core.price_estimator import PriceEstimator
from chatbox_translator.core.rate_limiter import RateLimiter
from chatbox_translator.core.speech_detector import SpeechDetector
from chatbox_translator.core.transcriber import Transcriber
from chatbox_translator.utils.error_handling import AudioDeviceError, safe_execution
from chatbox_translator.utils.text_processing import TextProcessor


class ChatboxTranslatorApp:
    """Main application class that wires capture, detection, dispatch and output together."""
    # Roughly 16 seconds of audio at 16 kHz with 1024-frame blocks
    FRAME_QUEUE_SIZE = 256
    THREAD_JOIN_TIMEOUT = 1.0

    def __init__(self, settings, transcriber=None, emitter=None, audio_processor=None,
                 listener=None, price_estimator=None):
        """Initialize the application and its components."""
        self.logger = logging.getLogger(__name__)
        self.settings = settings

        self.termination_event = threading.Event()
        self.frame_queue = queue.Queue(maxsize=self.FRAME_QUEUE_SIZE)
        self.fatal_error = None
        self.threads = []

        self.audio_processor = audio_processor or AudioProcessor(settings)
        self.transcriber = transcriber or Transcriber(settings)
        self.emitter = emitter or ChatboxEmitter(settings)
        self.listener = listener or OscStateListener(settings)
        self.rate_limiter = RateLimiter(settings.requests_per_minute)
        self.price_estimator = price_estimator or PriceEstimator(settings.model, settings.cost_file)
        self.speech_detector = SpeechDetector(
            settings,
            on_speech_start=self._on_speech_start,
            on_speech_end=self._on_speech_end,
        )
        self.dispatcher = Dispatcher(
            settings,
            self.transcriber,
            self.rate_limiter,
            self.audio_processor,
            text_processor=TextProcessor(),
            price_estimator=self.price_estimator,
            on_result=self._on_result,
            on_segment_done=self._on_speech_end,
        )

    def run(self):
        """
        Run until interrupted.

        Returns:
            Process exit code: 0 on a normal stop, 1 after a fatal device error
        """
        try:
            self.start()
        except AudioDeviceError as e:
            self.logger.critical(f"Audio device unavailable: {e}")
            self.shutdown()
            return 1

        self.logger.info("Press Ctrl+C to stop.")
        try:
            while not self.termination_event.wait(0.5):
                pass
        except KeyboardInterrupt:
            self.logger.info("Interrupted by user")
        finally:
            self.shutdown()

        if self.fatal_error is not None:
            self.logger.critical(f"Stopped because of a fatal error: {self.fatal_error}")
            return 1
        return 0

    def start(self):
        """Open the audio device and start the pipeline threads."""
        self.logger.info("Starting continuous audio recording...")
        if self.settings.translation_enabled:
            self.logger.info(f"Translating to: {self.settings.target_language}")
        else:
            self.logger.info("Translation disabled, sending transcriptions only")
        self.logger.info(f"Rate limit: {self.settings.requests_per_minute} requests per minute")
        self.logger.info(f"Loaded total cost: ${self.price_estimator.total_cost:.4f}")

        # Fail fast before any thread starts
        self.audio_processor.start_stream()
        self.listener.start()

        self._start_thread("emitter", self.emitter.run, self.termination_event)
        self._start_thread("dispatcher", self.dispatcher.run, self.termination_event)
        self._start_thread("detector", self.speech_detector.start_detection,
                           self.frame_queue, self.handle_segment, self.termination_event)
        self._start_thread("capture", self._capture_worker)

    def _start_thread(self, name, target, *args):
        thread = threading.Thread(target=target, args=args, name=name, daemon=True)
        thread.start()
        self.threads.append(thread)
        self.logger.debug(f"Started {name} thread")

    def _capture_worker(self):
        try:
            self.audio_processor.capture_loop(self.frame_queue, self.termination_event)
        except AudioDeviceError as e:
            self.fatal_error = e
            self.logger.critical(f"Audio capture failed: {e}")
            self.termination_event.set()

    def handle_segment(self, segment):
        """Called on the detector thread for each closed utterance."""
        if self.listener.muted:
            self.logger.info(f"Muted in VRChat, segment #{segment.segment_id} discarded")
            return
        self._save_debug_audio(segment)
        self.dispatcher.submit(segment)

    @safe_execution()
    def _save_debug_audio(self, segment):
        self.audio_processor.save_debug_audio(segment)

    def _on_speech_start(self):
        if not self.listener.muted:
            self.emitter.set_typing(True)

    def _on_speech_end(self):
        self.emitter.set_typing(False)

    def _on_result(self, result):
        if self.termination_event.is_set():
            return
        self.logger.info(f"Sending to chatbox: {result.display_text!r}")
        self.emitter.submit(result)

    def shutdown(self):
        """Stop all threads and release the audio device."""
        self.logger.info("Shutting down...")
        self.termination_event.set()
        self.emitter.stop()
        self.listener.stop()

        for thread in self.threads:
            thread.join(timeout=self.THREAD_JOIN_TIMEOUT)
            if thread.is_alive():
                self.logger.warning(f"{thread.name} thread did not terminate gracefully.")
        self.threads = []

        self.emitter.set_typing(False)
        self.audio_processor.cleanup()
        self.logger.info("Shutdown complete")
