"""
Provider configuration and the catalog of named presets.

This module is the single source of truth for which provider/model pairs can
be addressed by name. A preset bundles the provider, model id, the name of
the environment variable holding the credential, sampling defaults, pricing
and capability flags.

Example:
    >>> from bwwriter.models import PRESETS, resolve_config
    >>> config = resolve_config("claude3_haiku")
    >>> config.provider, config.key
    ('anthropic', 'ANTHROPIC_API_KEY')
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import ProviderConfigurationError


class ProviderConfig(BaseModel):
    """
    Validated, immutable settings for one generative-text provider/model.

    Attributes:
        provider: Provider name ("openai", "anthropic", "google", "perplexity", ...)
        model: Model identifier sent to the provider
        key: Name of the environment variable that holds the credential
        temperature: Default sampling temperature
        max_tokens: Default output token ceiling
        base_url: Optional endpoint override (OpenAI-compatible providers)
        price_input: USD per 1M input tokens
        price_output: USD per 1M output tokens
        tool_calls_supported: Provider honors forced function/tool calls
        json_output_supported: Provider honors a JSON response mode
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    provider: str = Field(min_length=1)
    model: str = Field(min_length=1)
    key: str = ""
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1000, gt=0)
    base_url: Optional[str] = None
    price_input: Optional[float] = Field(default=None, ge=0.0)
    price_output: Optional[float] = Field(default=None, ge=0.0)
    tool_calls_supported: bool = False
    json_output_supported: bool = False
    description: Optional[str] = None
    context_length: Optional[int] = Field(default=None, gt=0)


def _preset(**kwargs: Any) -> ProviderConfig:
    return ProviderConfig(**kwargs)


# =============================================================================
# OpenAI
# =============================================================================


class OpenAI:
    """OpenAI chat models."""

    GPT_4O = _preset(
        provider="openai",
        model="gpt-4o",
        key="OPENAI_API_KEY",
        temperature=0.7,
        max_tokens=2048,
        price_input=5.00,
        price_output=15.00,
        tool_calls_supported=True,
        json_output_supported=True,
    )
    GPT_4_TURBO = _preset(
        provider="openai",
        model="gpt-4-turbo",
        key="OPENAI_API_KEY",
        temperature=0.7,
        max_tokens=2048,
        price_input=10.00,
        price_output=30.00,
        tool_calls_supported=True,
        json_output_supported=True,
    )
    GPT_4O_MINI = _preset(
        provider="openai",
        model="gpt-4o-mini",
        key="OPENAI_API_KEY",
        temperature=0.7,
        max_tokens=2048,
        price_input=1.00,
        price_output=3.00,
        tool_calls_supported=True,
        json_output_supported=True,
    )
    GPT_35_TURBO = _preset(
        provider="openai",
        model="gpt-3.5-turbo-0125",
        key="OPENAI_API_KEY",
        temperature=0.7,
        max_tokens=2048,
        price_input=0.50,
        price_output=1.50,
        tool_calls_supported=True,
        json_output_supported=True,
    )


# =============================================================================
# Anthropic
# =============================================================================


class Anthropic:
    """Anthropic Claude models."""

    CLAUDE_3_OPUS = _preset(
        provider="anthropic",
        model="claude-3-opus-20240229",
        key="ANTHROPIC_API_KEY",
        temperature=0.3,
        max_tokens=2048,
        price_input=15.00,
        price_output=75.00,
        tool_calls_supported=True,
    )
    CLAUDE_3_SONNET = _preset(
        provider="anthropic",
        model="claude-3-5-sonnet-20240620",
        key="ANTHROPIC_API_KEY",
        temperature=0.2,
        max_tokens=2048,
        price_input=3.00,
        price_output=15.00,
        tool_calls_supported=True,
    )
    CLAUDE_3_HAIKU = _preset(
        provider="anthropic",
        model="claude-3-haiku-20240307",
        key="ANTHROPIC_API_KEY",
        temperature=0.2,
        max_tokens=2048,
        price_input=0.25,
        price_output=1.25,
        tool_calls_supported=True,
    )
    CLAUDE_2 = _preset(
        provider="anthropic",
        model="claude-2.1",
        key="ANTHROPIC_API_KEY",
        temperature=0.2,
        max_tokens=2048,
        price_input=0.80,
        price_output=2.40,
    )


# =============================================================================
# Google Gemini
# =============================================================================


class Google:
    """Google Gemini models."""

    GEMINI_15_PRO = _preset(
        provider="google",
        model="gemini-1.5-pro-latest",
        key="GOOGLE_API_KEY",
        temperature=0.7,
        max_tokens=2048,
        price_input=7.00,
        price_output=21.00,
        tool_calls_supported=True,
        json_output_supported=True,
    )
    GEMINI_15_FLASH = _preset(
        provider="google",
        model="gemini-1.5-flash-latest",
        key="GOOGLE_API_KEY",
        temperature=0.7,
        max_tokens=2048,
        price_input=0.35,
        price_output=1.05,
        tool_calls_supported=True,
        json_output_supported=True,
    )
    GEMINI_10_PRO = _preset(
        provider="google",
        model="gemini-1.0-pro",
        key="GOOGLE_API_KEY",
        temperature=0.7,
        max_tokens=2048,
        price_input=0.50,
        price_output=1.50,
    )


# =============================================================================
# OpenAI-compatible hosted providers
# =============================================================================


class Perplexity:
    """Perplexity Sonar models (online search-augmented)."""

    SONAR_LARGE = _preset(
        provider="perplexity",
        model="llama-3.1-sonar-large-128k-online",
        key="PERPLEXITY_API_KEY",
        temperature=0.2,
        max_tokens=2048,
        price_input=0.60,
        price_output=2.00,
    )
    SONAR_SMALL = _preset(
        provider="perplexity",
        model="llama-3.1-sonar-small-128k-online",
        key="PERPLEXITY_API_KEY",
        temperature=0.2,
        max_tokens=2048,
        price_input=0.20,
        price_output=0.80,
    )
    SONAR_LARGE_CHAT = _preset(
        provider="perplexity",
        model="llama-3.1-sonar-large-128k-chat",
        key="PERPLEXITY_API_KEY",
        temperature=0.2,
        max_tokens=2048,
        price_input=0.60,
        price_output=2.00,
    )
    SONAR_SMALL_CHAT = _preset(
        provider="perplexity",
        model="llama-3.1-sonar-small-128k-chat",
        key="PERPLEXITY_API_KEY",
        temperature=0.2,
        max_tokens=2048,
        price_input=0.20,
        price_output=0.80,
    )


class Mistral:
    """Mistral hosted models."""

    LARGE = _preset(
        provider="mistral",
        model="mistral-large-latest",
        key="MISTRAL_API_KEY",
        temperature=0.3,
        max_tokens=2048,
        price_input=2.00,
        price_output=8.00,
        json_output_supported=True,
    )
    MEDIUM = _preset(
        provider="mistral",
        model="mistral-medium-latest",
        key="MISTRAL_API_KEY",
        temperature=0.3,
        max_tokens=2048,
        price_input=0.70,
        price_output=2.80,
        json_output_supported=True,
    )
    SMALL = _preset(
        provider="mistral",
        model="mistral-small-latest",
        key="MISTRAL_API_KEY",
        temperature=0.3,
        max_tokens=2048,
        price_input=0.15,
        price_output=0.60,
        json_output_supported=True,
    )


class Groq:
    """Meta Llama models served by Groq."""

    LLAMA3_70B = _preset(
        provider="groq",
        model="llama3-70b-8192",
        key="GROQ_API_KEY",
        temperature=0.3,
        max_tokens=2048,
        price_input=0.50,
        price_output=0.50,
    )
    LLAMA3_8B = _preset(
        provider="groq",
        model="llama3-8b-8192",
        key="GROQ_API_KEY",
        temperature=0.3,
        max_tokens=2048,
        price_input=0.10,
        price_output=0.10,
    )


class Cohere:
    """Cohere Command models."""

    COMMAND_R_PLUS = _preset(
        provider="cohere",
        model="command-r-plus",
        key="COHERE_API_KEY",
        temperature=0.3,
        max_tokens=2048,
        price_input=3.00,
        price_output=15.00,
        tool_calls_supported=True,
    )
    COMMAND_R = _preset(
        provider="cohere",
        model="command-r",
        key="COHERE_API_KEY",
        temperature=0.3,
        max_tokens=2048,
        price_input=0.50,
        price_output=1.50,
        tool_calls_supported=True,
    )


class OpenRouter:
    """OpenAI models proxied through OpenRouter."""

    GPT_4O = _preset(
        provider="openrouter",
        model="openai/gpt-4o",
        key="OPENROUTER_API_KEY",
        temperature=0.3,
        max_tokens=2048,
        price_input=5.00,
        price_output=15.00,
        tool_calls_supported=True,
    )
    GPT_35 = _preset(
        provider="openrouter",
        model="openai/gpt-3.5-turbo",
        key="OPENROUTER_API_KEY",
        temperature=0.3,
        max_tokens=2048,
        price_input=0.50,
        price_output=1.50,
        tool_calls_supported=True,
    )


# =============================================================================
# Registry
# =============================================================================

PRESETS: Dict[str, ProviderConfig] = {
    "gpt4o": OpenAI.GPT_4O,
    "gpt4turbo": OpenAI.GPT_4_TURBO,
    "gpt4o_mini": OpenAI.GPT_4O_MINI,
    "gpt35turbo": OpenAI.GPT_35_TURBO,
    "claude3_opus": Anthropic.CLAUDE_3_OPUS,
    "claude3_sonnet": Anthropic.CLAUDE_3_SONNET,
    "claude3_haiku": Anthropic.CLAUDE_3_HAIKU,
    "claude2": Anthropic.CLAUDE_2,
    "gemini15_pro": Google.GEMINI_15_PRO,
    "gemini15_flash": Google.GEMINI_15_FLASH,
    "gemini10_pro": Google.GEMINI_10_PRO,
    "ppx_sonar_large": Perplexity.SONAR_LARGE,
    "ppx_sonar_small": Perplexity.SONAR_SMALL,
    "ppx_sonar_large_chat": Perplexity.SONAR_LARGE_CHAT,
    "ppx_sonar_small_chat": Perplexity.SONAR_SMALL_CHAT,
    "mistral_large": Mistral.LARGE,
    "mistral_medium": Mistral.MEDIUM,
    "mistral_small": Mistral.SMALL,
    "llama3": Groq.LLAMA3_70B,
    "llama3_8b": Groq.LLAMA3_8B,
    "command_r_plus": Cohere.COMMAND_R_PLUS,
    "command_r": Cohere.COMMAND_R,
    "openrouter_gpt4o": OpenRouter.GPT_4O,
    "openrouter_gpt35": OpenRouter.GPT_35,
}

DEFAULT_PRESET = "gpt4o_mini"

ConfigLike = Union[str, ProviderConfig, Mapping[str, Any], None]


def resolve_config(config_or_name: ConfigLike = None, **overrides: Any) -> ProviderConfig:
    """
    Normalize a preset name, a ProviderConfig, or a plain mapping into a
    validated ProviderConfig.

    Keyword overrides whose value is None are ignored, so callers can pass
    optional per-call settings straight through.

    Raises:
        ProviderConfigurationError: Unknown preset name or invalid settings.
    """
    if config_or_name is None:
        config_or_name = DEFAULT_PRESET

    if isinstance(config_or_name, str):
        base = PRESETS.get(config_or_name)
        if base is None:
            known = ", ".join(sorted(PRESETS))
            raise ProviderConfigurationError(
                provider_name=config_or_name,
                missing_config=f"unknown preset '{config_or_name}' (known presets: {known})",
            )
    elif isinstance(config_or_name, ProviderConfig):
        base = config_or_name
    elif isinstance(config_or_name, Mapping):
        try:
            base = ProviderConfig.model_validate(dict(config_or_name))
        except ValidationError as exc:
            raise ProviderConfigurationError(
                provider_name=str(config_or_name.get("provider", "<unknown>")),
                missing_config=f"invalid configuration: {exc.errors(include_url=False)}",
            ) from exc
    else:
        raise ProviderConfigurationError(
            provider_name="<unknown>",
            missing_config=f"unsupported configuration type {type(config_or_name).__name__}",
        )

    updates = {k: v for k, v in overrides.items() if v is not None}
    if not updates:
        return base
    try:
        return ProviderConfig.model_validate({**base.model_dump(), **updates})
    except ValidationError as exc:
        raise ProviderConfigurationError(
            provider_name=base.provider,
            missing_config=f"invalid override: {exc.errors(include_url=False)}",
        ) from exc


__all__ = [
    "ProviderConfig",
    "PRESETS",
    "DEFAULT_PRESET",
    "ConfigLike",
    "resolve_config",
    "OpenAI",
    "Anthropic",
    "Google",
    "Perplexity",
    "Mistral",
    "Groq",
    "Cohere",
    "OpenRouter",
]
