"""Tests for the provider preset catalog and resolve_config()."""

import pytest
from pydantic import ValidationError

from bwwriter.exceptions import ErrorKind, ProviderConfigurationError
from bwwriter.models import DEFAULT_PRESET, PRESETS, Anthropic, OpenAI, ProviderConfig, resolve_config


class TestProviderConfig:
    def test_defaults(self):
        config = ProviderConfig(provider="openai", model="gpt-4o")
        assert config.key == ""
        assert config.temperature == 0.7
        assert config.max_tokens == 1000
        assert config.base_url is None
        assert config.tool_calls_supported is False

    def test_frozen(self):
        with pytest.raises(ValidationError):
            OpenAI.GPT_4O.temperature = 1.5

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError):
            ProviderConfig(provider="openai", model="gpt-4o", colour="blue")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"provider": "", "model": "m"},
            {"provider": "p", "model": ""},
            {"provider": "p", "model": "m", "temperature": 3.0},
            {"provider": "p", "model": "m", "max_tokens": 0},
            {"provider": "p", "model": "m", "price_input": -1.0},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValidationError):
            ProviderConfig(**kwargs)


class TestPresets:
    def test_default_preset_exists(self):
        assert DEFAULT_PRESET in PRESETS

    def test_every_preset_names_a_credential(self):
        for name, config in PRESETS.items():
            assert config.key.endswith("_API_KEY"), name

    def test_every_preset_is_priced(self):
        for name, config in PRESETS.items():
            assert config.price_input is not None, name
            assert config.price_output is not None, name

    def test_provider_credentials(self):
        assert PRESETS["gpt4o"].key == "OPENAI_API_KEY"
        assert PRESETS["claude3_haiku"].key == "ANTHROPIC_API_KEY"
        assert PRESETS["gemini15_flash"].key == "GOOGLE_API_KEY"
        assert PRESETS["ppx_sonar_small"].key == "PERPLEXITY_API_KEY"


class TestResolveConfig:
    def test_none_uses_default(self):
        assert resolve_config() == PRESETS[DEFAULT_PRESET]

    def test_by_name(self):
        assert resolve_config("claude3_haiku") is Anthropic.CLAUDE_3_HAIKU

    def test_config_passes_through(self):
        assert resolve_config(OpenAI.GPT_4O) is OpenAI.GPT_4O

    def test_mapping(self):
        config = resolve_config({"provider": "openai", "model": "gpt-4o", "key": "K"})
        assert isinstance(config, ProviderConfig)
        assert config.key == "K"

    def test_overrides_applied(self):
        config = resolve_config("gpt4o", temperature=0.1, max_tokens=50)
        assert config.temperature == 0.1
        assert config.max_tokens == 50
        assert config.model == "gpt-4o"
        assert OpenAI.GPT_4O.temperature == 0.7

    def test_none_overrides_ignored(self):
        assert resolve_config("gpt4o", temperature=None) is OpenAI.GPT_4O

    def test_unknown_preset(self):
        with pytest.raises(ProviderConfigurationError) as exc_info:
            resolve_config("gpt-99")
        assert "unknown preset 'gpt-99'" in str(exc_info.value)
        assert exc_info.value.kind is ErrorKind.INTERNAL_ERROR

    def test_invalid_mapping(self):
        with pytest.raises(ProviderConfigurationError):
            resolve_config({"provider": "openai"})

    def test_invalid_override(self):
        with pytest.raises(ProviderConfigurationError, match="invalid override"):
            resolve_config("gpt4o", temperature=9.0)

    def test_unsupported_type(self):
        with pytest.raises(ProviderConfigurationError, match="unsupported configuration type"):
            resolve_config(42)
