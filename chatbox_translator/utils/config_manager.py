"""
Configuration management for the chatbox translator.
"""

import os
import logging
import tomllib
from chatbox_translator.models.settings import Settings
from chatbox_translator.utils.error_handling import ConfigError

DEFAULT_CONFIG_FILE = "config.toml"
EXAMPLE_CONFIG_FILE = "config.toml.example"

SAMPLE_RATES = [8000, 16000, 22050, 44100, 48000]

# Top-level keys that must hold a table
CONFIG_SECTIONS = ("osc", "openai", "translation", "audio", "rate_limit")


class ConfigManager:
    """Loads config.toml and rejects invalid values before the pipeline starts."""

    def __init__(self, config_path=DEFAULT_CONFIG_FILE):
        """Initialize the configuration manager."""
        self.logger = logging.getLogger(__name__)
        self.config_path = config_path

    def create_default_settings(self):
        """Create default settings."""
        return Settings()

    def load_settings(self, environ=None):
        """
        Load and validate settings from the TOML file.

        Raises:
            ConfigError: if the file is missing, unreadable or contains invalid values
        """
        settings = self.create_default_settings()

        if not os.path.exists(self.config_path):
            raise ConfigError(
                f"Config file '{self.config_path}' not found. "
                f"Copy '{EXAMPLE_CONFIG_FILE}' to '{DEFAULT_CONFIG_FILE}' and fill in your settings."
            )

        try:
            with open(self.config_path, 'rb') as f:
                settings_dict = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Could not parse '{self.config_path}': {e}") from e
        except OSError as e:
            raise ConfigError(f"Could not read '{self.config_path}': {e}") from e

        section_errors = self.check_sections(settings_dict)
        settings.update(settings_dict)
        settings.apply_environment(environ)
        self.logger.info(f"Settings loaded from {self.config_path}")

        return self.validate_settings(settings, section_errors)

    def check_sections(self, settings_dict):
        """Remove sections that are not tables, returning an error for each one."""
        errors = []
        for section in CONFIG_SECTIONS:
            if section in settings_dict and not isinstance(settings_dict[section], dict):
                errors.append(f"[{section}] must be a table, got {settings_dict.pop(section)!r}")
        return errors

    def validate_settings(self, settings, errors=None):
        """Validate settings and raise ConfigError listing every problem found."""
        errors = list(errors or [])

        self.check_type(errors, "debug", settings.debug_mode, bool)

        # OSC
        self.check_non_empty(errors, "osc.address", settings.osc_address)
        self.check_port(errors, "osc.input_port", settings.osc_input_port)
        self.check_port(errors, "osc.output_port", settings.osc_output_port)
        self.check_range(errors, "osc.display_time", settings.display_time, 0, None, integer=True)
        self.check_range(errors, "osc.max_message_chunks", settings.max_message_chunks, 1, None, integer=True)

        # OpenAI
        self.check_non_empty(errors, "openai.api_key", settings.api_key)
        self.check_non_empty(errors, "openai.model", settings.model)
        self.check_non_empty(errors, "openai.transcription_model", settings.transcription_model)
        self.check_range(errors, "openai.timeout", settings.request_timeout, 0, None, exclusive_min=True)
        self.check_type(errors, "openai.cost_file", settings.cost_file, str)

        # Translation
        self.check_type(errors, "translation.target_language", settings.target_language, str)
        self.check_type(errors, "translation.include_original_message",
                        settings.include_original_message, bool)

        # Audio
        self.check_option(errors, "audio.sample_rate", settings.sample_rate, SAMPLE_RATES)
        self.check_range(errors, "audio.silence_threshold", settings.silence_threshold, 0, None)
        self.check_range(errors, "audio.noise_gate_threshold", settings.noise_gate_threshold, 0.0, 1.0)
        self.check_range(errors, "audio.noise_gate_hold_time", settings.noise_gate_hold_time, 0.0, None)
        self.check_range(errors, "audio.min_transcription_duration",
                         settings.min_transcription_duration, 0.0, None)
        self.check_range(errors, "audio.pre_padding", settings.pre_padding, 0.0, 2.0)
        if self.check_range(errors, "audio.max_segment_duration", settings.max_segment_duration, 0.0, None,
                            exclusive_min=True):
            min_duration = settings.min_transcription_duration
            if (self.is_number(min_duration) and min_duration >= settings.max_segment_duration):
                errors.append("audio.max_segment_duration must be greater than audio.min_transcription_duration")
        if settings.input_device_index is not None:
            self.check_range(errors, "audio.input_device_index", settings.input_device_index, 0, None,
                             integer=True)

        # Rate limiting
        self.check_range(errors, "rate_limit.requests_per_minute", settings.requests_per_minute, 1, None,
                         integer=True)

        if errors:
            for error in errors:
                self.logger.error(f"Invalid configuration: {error}")
            raise ConfigError("Invalid configuration:\n  " + "\n  ".join(errors))

        return settings

    @staticmethod
    def is_number(value):
        # bool is an int subclass, but "true" is never a valid number here
        return isinstance(value, (int, float)) and not isinstance(value, bool)

    def check_range(self, errors, name, value, min_val, max_val, integer=False, exclusive_min=False):
        """Ensure a value is a number within a specified range."""
        if not self.is_number(value) or (integer and not isinstance(value, int)):
            kind = "an integer" if integer else "a number"
            errors.append(f"{name} must be {kind}, got {value!r}")
            return False
        if exclusive_min and value <= min_val:
            errors.append(f"{name} must be greater than {min_val}, got {value!r}")
            return False
        if value < min_val or (max_val is not None and value > max_val):
            bounds = f"between {min_val} and {max_val}" if max_val is not None else f"at least {min_val}"
            errors.append(f"{name} must be {bounds}, got {value!r}")
            return False
        return True

    def check_option(self, errors, name, value, options):
        """Ensure a value is one of the allowed options."""
        if value not in options or isinstance(value, bool):
            errors.append(f"{name} must be one of {options}, got {value!r}")
            return False
        return True

    def check_port(self, errors, name, value):
        return self.check_range(errors, name, value, 1, 65535, integer=True)

    def check_type(self, errors, name, value, expected):
        if not isinstance(value, expected):
            errors.append(f"{name} must be of type {expected.__name__}, got {value!r}")
            return False
        return True

    def check_non_empty(self, errors, name, value):
        if not isinstance(value, str) or not value.strip():
            errors.append(f"{name} must be a non-empty string")
            return False
        return True
