"""
Settings data model for the chatbox translator.
"""
import os
import typing as t


class Settings:
    """Stores application settings, grouped the same way as config.toml."""

    def __init__(self):
        """Initialize with default settings."""
        # Debug mode (verbose logging + saving segments to disk)
        self.debug_mode = False

        # OSC parameters
        self.osc_address = "127.0.0.1"
        self.osc_input_port = 9001
        self.osc_output_port = 9000
        self.display_time = 3000  # milliseconds
        self.max_message_chunks = 9

        # OpenAI parameters
        self.api_key = ""
        self.model = "gpt-4o-mini"
        self.transcription_model = "whisper-1"
        self.request_timeout = 30.0
        self.cost_file = "total_cost.txt"

        # Translation parameters
        self.target_language = ""
        self.include_original_message = True

        # Audio parameters
        self.sample_rate = 16000
        self.input_device_index: t.Optional[int] = None
        self.silence_threshold = 800  # milliseconds
        self.noise_gate_threshold = 0.1
        self.noise_gate_hold_time = 0.5
        self.min_transcription_duration = 1.0
        self.max_segment_duration = 30.0
        self.pre_padding = 0.1

        # Rate limiting
        self.requests_per_minute = 20

    @property
    def translation_enabled(self) -> bool:
        return bool(self.target_language and self.target_language.strip())

    def update(self, settings_dict):
        """Update settings from a dictionary shaped like config.toml."""
        if not settings_dict:
            return

        self.debug_mode = settings_dict.get("debug", self.debug_mode)

        if "osc" in settings_dict:
            osc = settings_dict["osc"]
            self.osc_address = osc.get("address", self.osc_address)
            self.osc_input_port = osc.get("input_port", self.osc_input_port)
            self.osc_output_port = osc.get("output_port", self.osc_output_port)
            self.display_time = osc.get("display_time", self.display_time)
            self.max_message_chunks = osc.get("max_message_chunks", self.max_message_chunks)

        if "openai" in settings_dict:
            openai = settings_dict["openai"]
            self.api_key = openai.get("api_key", self.api_key)
            self.model = openai.get("model", self.model)
            self.transcription_model = openai.get("transcription_model", self.transcription_model)
            self.request_timeout = openai.get("timeout", self.request_timeout)
            self.cost_file = openai.get("cost_file", self.cost_file)

        if "translation" in settings_dict:
            translation = settings_dict["translation"]
            self.target_language = translation.get("target_language", self.target_language)
            self.include_original_message = translation.get(
                "include_original_message", self.include_original_message
            )

        if "audio" in settings_dict:
            audio = settings_dict["audio"]
            self.sample_rate = audio.get("sample_rate", self.sample_rate)
            self.silence_threshold = audio.get("silence_threshold", self.silence_threshold)
            self.noise_gate_threshold = audio.get("noise_gate_threshold", self.noise_gate_threshold)
            self.noise_gate_hold_time = audio.get("noise_gate_hold_time", self.noise_gate_hold_time)
            self.min_transcription_duration = audio.get(
                "min_transcription_duration", self.min_transcription_duration
            )
            self.max_segment_duration = audio.get("max_segment_duration", self.max_segment_duration)
            self.pre_padding = audio.get("pre_padding", self.pre_padding)
            # Load the input device index, ensuring it's an int or None
            loaded_index = audio.get("input_device_index", self.input_device_index)
            if isinstance(loaded_index, int) or loaded_index is None:
                self.input_device_index = loaded_index
            else:
                try:
                    self.input_device_index = int(loaded_index)
                except (ValueError, TypeError):
                    self.input_device_index = None  # Fallback to default device

        if "rate_limit" in settings_dict:
            self.requests_per_minute = settings_dict["rate_limit"].get(
                "requests_per_minute", self.requests_per_minute
            )

    def apply_environment(self, environ=None):
        """Fill secrets that were left blank in the file from the environment."""
        environ = os.environ if environ is None else environ
        if not self.api_key:
            self.api_key = environ.get("OPENAI_API_KEY", "")
