import pytest

from chatbox_translator.utils.config_manager import ConfigManager
from chatbox_translator.utils.error_handling import ConfigError

VALID_CONFIG = """
debug = true

[osc]
address = "127.0.0.1"
input_port = 9001
output_port = 9000
display_time = 2500
max_message_chunks = 4

[openai]
api_key = "sk-test"
model = "gpt-4o-mini"

[translation]
target_language = "Japanese"
include_original_message = false

[audio]
silence_threshold = 500
noise_gate_threshold = 0.05
noise_gate_hold_time = 0.3
min_transcription_duration = 0.8

[rate_limit]
requests_per_minute = 10
"""


def _write(tmp_path, text):
    path = tmp_path / "config.toml"
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_loads_valid_config(tmp_path):
    settings = ConfigManager(_write(tmp_path, VALID_CONFIG)).load_settings(environ={})

    assert settings.debug_mode is True
    assert settings.display_time == 2500
    assert settings.max_message_chunks == 4
    assert settings.api_key == "sk-test"
    assert settings.target_language == "Japanese"
    assert settings.translation_enabled is True
    assert settings.include_original_message is False
    assert settings.silence_threshold == 500
    assert settings.noise_gate_threshold == pytest.approx(0.05)
    assert settings.requests_per_minute == 10
    # Keys missing from the file keep their defaults
    assert settings.transcription_model == "whisper-1"
    assert settings.sample_rate == 16000


def test_missing_file_points_at_example(tmp_path):
    with pytest.raises(ConfigError) as excinfo:
        ConfigManager(str(tmp_path / "nope.toml")).load_settings(environ={})

    assert "config.toml.example" in str(excinfo.value)


def test_unparseable_file_is_rejected(tmp_path):
    with pytest.raises(ConfigError):
        ConfigManager(_write(tmp_path, "[osc\naddress = ")).load_settings(environ={})


def test_out_of_range_values_are_all_reported(tmp_path):
    text = (
        VALID_CONFIG.replace("noise_gate_threshold = 0.05", "noise_gate_threshold = 1.5")
        .replace("output_port = 9000", "output_port = 70000")
        .replace("requests_per_minute = 10", "requests_per_minute = 0")
        .replace("max_message_chunks = 4", "max_message_chunks = 0")
    )

    with pytest.raises(ConfigError) as excinfo:
        ConfigManager(_write(tmp_path, text)).load_settings(environ={})

    message = str(excinfo.value)
    for key in ("audio.noise_gate_threshold", "osc.output_port", "rate_limit.requests_per_minute",
                "osc.max_message_chunks"):
        assert key in message


def test_wrong_types_are_rejected(tmp_path):
    text = VALID_CONFIG.replace("include_original_message = false", 'include_original_message = "no"').replace(
        "input_port = 9001", "input_port = true"
    )

    with pytest.raises(ConfigError) as excinfo:
        ConfigManager(_write(tmp_path, text)).load_settings(environ={})

    assert "translation.include_original_message" in str(excinfo.value)
    assert "osc.input_port" in str(excinfo.value)


def test_api_key_falls_back_to_environment(tmp_path):
    text = VALID_CONFIG.replace('api_key = "sk-test"', 'api_key = ""')

    settings = ConfigManager(_write(tmp_path, text)).load_settings(environ={"OPENAI_API_KEY": "sk-env"})

    assert settings.api_key == "sk-env"


def test_missing_api_key_is_fatal(tmp_path):
    text = VALID_CONFIG.replace('api_key = "sk-test"', 'api_key = ""')

    with pytest.raises(ConfigError) as excinfo:
        ConfigManager(_write(tmp_path, text)).load_settings(environ={})

    assert "openai.api_key" in str(excinfo.value)


def test_max_segment_must_exceed_min_duration(tmp_path):
    text = VALID_CONFIG + "\n"
    text = text.replace("min_transcription_duration = 0.8", "min_transcription_duration = 5.0\nmax_segment_duration = 2.0")

    with pytest.raises(ConfigError) as excinfo:
        ConfigManager(_write(tmp_path, text)).load_settings(environ={})

    assert "audio.max_segment_duration" in str(excinfo.value)


def test_sections_that_are_not_tables_are_reported(tmp_path):
    text = "osc = 5\nrate_limit = \"fast\"\n\n[openai]\napi_key = \"sk-test\"\n"

    with pytest.raises(ConfigError) as excinfo:
        ConfigManager(_write(tmp_path, text)).load_settings(environ={})

    message = str(excinfo.value)
    assert "[osc] must be a table" in message
    assert "[rate_limit] must be a table" in message


def test_bad_section_is_reported_with_other_problems(tmp_path):
    text = (
        VALID_CONFIG.replace("debug = true", "debug = true\naudio = [1, 2]")
        .replace("[audio]", "[unused]")
        .replace("requests_per_minute = 10", "requests_per_minute = 0")
    )

    with pytest.raises(ConfigError) as excinfo:
        ConfigManager(_write(tmp_path, text)).load_settings(environ={})

    assert "[audio] must be a table" in str(excinfo.value)
    assert "rate_limit.requests_per_minute" in str(excinfo.value)
