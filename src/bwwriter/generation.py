"""
Schema-validated invocation of generative-text providers.

Every tool that needs model output goes through ``GenerationClient.invoke``:

1. resolve a preset name or ad-hoc settings into a ProviderConfig
2. resolve the credential from the environment (fail fast, no retry)
3. build the messages, appending a JSON-schema directive to the prompt
4. call the provider transport and validate the payload against the schema
5. on failure, append a corrective note, back off, and try again until the
   attempt ceiling is reached

The retry schedule lives in ``RetryPolicy`` so it can be tested without any
transport.

Example:
    >>> from pydantic import BaseModel
    >>> class Title(BaseModel):
    ...     title: str
    >>> client = GenerationClient()
    >>> result = await client.invoke("Suggest a title about tides", "claude3_haiku", schema=Title)
    >>> if result.ok:
    ...     print(result.data["title"])
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Type

from pydantic import BaseModel, ValidationError

from .env import load_default_env, read_key
from .exceptions import GenerationError, ProviderConfigurationError
from .models import ConfigLike, ProviderConfig, resolve_config
from .prompt import PromptBuilder
from .providers import default_transports
from .providers.base import ProviderError, Transport, TransportReply
from .types import Message
from .usage import UsageStats

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3

Sleep = Callable[[float], Awaitable[Any]]


class TextResult(BaseModel):
    """Default output schema: a single free-text field."""

    result: str


class BoolAnswer(BaseModel):
    answer: bool


class AttemptOutcome(str, Enum):
    """Where the retry state machine goes after an attempt is validated."""

    SUCCESS = "success"
    RETRY = "retry"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry schedule for one invocation.

    Attributes:
        max_attempts: Total number of transport calls allowed (>= 1).
        backoff_seconds: Delay unit; the delay after failed attempt ``n`` is
            ``backoff_seconds * n``.
        max_backoff_seconds: Upper bound for any single delay.
    """

    max_attempts: int = DEFAULT_MAX_RETRIES
    backoff_seconds: float = 0.5
    max_backoff_seconds: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.backoff_seconds < 0 or self.max_backoff_seconds < 0:
            raise ValueError("backoff delays cannot be negative")

    def next_outcome(self, attempt: int, succeeded: bool) -> AttemptOutcome:
        """Transition after attempt ``attempt`` (1-based) was validated."""
        if succeeded:
            return AttemptOutcome.SUCCESS
        if attempt >= self.max_attempts:
            return AttemptOutcome.EXHAUSTED
        return AttemptOutcome.RETRY

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt ``attempt`` before the next one."""
        return min(self.backoff_seconds * attempt, self.max_backoff_seconds)

    def total_delay(self) -> float:
        """Worst-case backoff across a fully exhausted invocation."""
        return sum(self.delay_for(n) for n in range(1, self.max_attempts))


@dataclass
class InvocationRequest:
    """Everything needed for one structured invocation; built fresh per call."""

    prompt: str
    schema: Type[BaseModel] = TextResult
    system_message: Optional[str] = None
    max_retries: int = DEFAULT_MAX_RETRIES
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.prompt, str) or not self.prompt.strip():
            raise ValueError("prompt must be a non-empty string")
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")


@dataclass
class InvocationResult:
    """
    Outcome of an invocation.

    On success ``data`` holds the validated object as a plain dict and
    ``value`` the pydantic instance. On failure both are None and
    ``last_error`` / ``last_raw`` describe the final attempt.
    """

    ok: bool
    attempts: int
    data: Optional[Dict[str, Any]] = None
    value: Optional[BaseModel] = None
    last_raw: Optional[str] = None
    last_error: Optional[str] = None
    usage: UsageStats = field(default_factory=UsageStats)

    @property
    def reason(self) -> Optional[str]:
        if self.ok:
            return None
        return f"Failed after {self.attempts} attempts. Last error: {self.last_error or 'none'}"

    def unwrap(self) -> Dict[str, Any]:
        """Return ``data`` or raise GenerationError when the invocation failed."""
        if not self.ok or self.data is None:
            raise GenerationError(self.attempts, self.last_error, self.last_raw)
        return self.data


def format_validation_error(exc: ValidationError) -> str:
    """Render a pydantic ValidationError as a single line the model can act on."""
    parts = []
    for error in exc.errors(include_url=False):
        location = ".".join(str(p) for p in error.get("loc", ())) or "<root>"
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    return "schema validation failed: " + "; ".join(parts)


class GenerationClient:
    """
    Resilient, schema-validated access to generative-text providers.

    Attributes:
        transports: Provider name -> transport.
        policy: Default retry schedule; ``max_retries`` per call overrides the ceiling.
        prompt_builder: Builds the initial messages and corrective notes.
    """

    def __init__(
        self,
        transports: Optional[Dict[str, Transport]] = None,
        policy: Optional[RetryPolicy] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        environ: Optional[Mapping[str, str]] = None,
        sleep: Optional[Sleep] = None,
        load_env: bool = True,
    ):
        if load_env and environ is None:
            load_default_env()
        self.transports = transports if transports is not None else default_transports()
        self.policy = policy or RetryPolicy()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self._environ = environ
        self._sleep: Sleep = sleep or asyncio.sleep

    @property
    def environ(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    async def aclose(self) -> None:
        """Release SDK clients held by the transports."""
        seen = set()
        for transport in self.transports.values():
            if id(transport) in seen:
                continue
            seen.add(id(transport))
            close = getattr(transport, "aclose", None)
            if close is not None:
                await close()

    def resolve_credential(self, config: ProviderConfig, transport: Transport) -> str:
        """Read the config's credential variable; raise when it is required but empty."""
        if not getattr(transport, "requires_credential", True):
            return read_key(config.key, self.environ) if config.key else ""
        if not config.key:
            raise ProviderConfigurationError(
                provider_name=config.provider,
                missing_config=f"no credential variable configured for model {config.model}",
            )
        api_key = read_key(config.key, self.environ)
        if not api_key:
            raise ProviderConfigurationError(
                provider_name=config.provider,
                missing_config=f"no API key found for {config.model}",
                env_var=config.key,
            )
        return api_key

    def transport_for(self, config: ProviderConfig) -> Transport:
        transport = self.transports.get(config.provider)
        if transport is None:
            supported = ", ".join(sorted(self.transports))
            raise ProviderConfigurationError(
                provider_name=config.provider,
                missing_config=f"unsupported provider (supported: {supported})",
            )
        return transport

    async def invoke(
        self,
        prompt: str,
        config_or_name: ConfigLike = None,
        *,
        schema: Type[BaseModel] = TextResult,
        system_message: Optional[str] = None,
        max_retries: Optional[int] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> InvocationResult:
        """
        Invoke a provider and return a schema-valid result or a failure reason.

        Args:
            prompt: Non-empty instruction text.
            config_or_name: Preset key, ProviderConfig, or mapping of settings.
                None selects the default preset.
            schema: Pydantic model the output must satisfy.
            system_message: Optional system instruction.
            max_retries: Attempt ceiling (defaults to the client's policy).
            temperature: Per-call override of the config temperature.
            max_tokens: Per-call override of the config token ceiling.

        Raises:
            ValueError: Empty prompt or non-positive ``max_retries``.
            ProviderConfigurationError: Unknown preset/provider, invalid
                settings, or missing credential. Raised before any attempt.
        """
        request = InvocationRequest(
            prompt=prompt,
            schema=schema,
            system_message=system_message,
            max_retries=max_retries if max_retries is not None else self.policy.max_attempts,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return await self.run(request, config_or_name)

    async def run(self, request: InvocationRequest, config_or_name: ConfigLike = None) -> InvocationResult:
        config = resolve_config(
            config_or_name,
            temperature=request.temperature,
            max_tokens=request.max_tokens,
        )
        transport = self.transport_for(config)
        api_key = self.resolve_credential(config, transport)

        json_schema = request.schema.model_json_schema()
        messages = self.prompt_builder.build(request.prompt, json_schema, request.system_message)
        policy = replace(self.policy, max_attempts=request.max_retries)

        usage = UsageStats(model=config.model, provider=config.provider)
        last_raw: Optional[str] = None
        last_error: Optional[str] = None

        for attempt in range(1, policy.max_attempts + 1):
            reply = await self._send(transport, messages, config, api_key, json_schema)
            usage.add(reply.usage)
            last_raw = reply.raw

            value: Optional[BaseModel] = None
            if reply.is_empty:
                last_error = reply.error or "empty or unparseable response"
            else:
                try:
                    value = request.schema.model_validate(reply.data)
                except ValidationError as exc:
                    last_error = format_validation_error(exc)

            outcome = policy.next_outcome(attempt, succeeded=value is not None)
            if outcome is AttemptOutcome.SUCCESS and value is not None:
                logger.debug(
                    "Attempt %d/%d succeeded (%s/%s)",
                    attempt,
                    policy.max_attempts,
                    config.provider,
                    config.model,
                )
                return InvocationResult(
                    ok=True,
                    attempts=attempt,
                    data=value.model_dump(mode="json"),
                    value=value,
                    last_raw=last_raw,
                    usage=usage,
                )

            logger.info(
                "Attempt %d/%d failed (%s/%s): %s",
                attempt,
                policy.max_attempts,
                config.provider,
                config.model,
                last_error,
            )
            if outcome is AttemptOutcome.EXHAUSTED:
                break
            messages.append(self.prompt_builder.corrective_note(attempt, last_error or "unknown error"))
            delay = policy.delay_for(attempt)
            if delay:
                await self._sleep(delay)

        result = InvocationResult(
            ok=False,
            attempts=policy.max_attempts,
            last_raw=last_raw,
            last_error=last_error,
            usage=usage,
        )
        logger.warning("%s", result.reason)
        return result

    async def _send(
        self,
        transport: Transport,
        messages: List[Message],
        config: ProviderConfig,
        api_key: str,
        json_schema: Dict[str, Any],
    ) -> TransportReply:
        try:
            return await transport.send(
                list(messages), config, api_key=api_key, json_schema=json_schema
            )
        except ProviderError as exc:
            logger.debug("Transport %s raised a recoverable error: %s", transport.name, exc)
            return TransportReply.failed(str(exc))

    # Convenience helpers

    async def quick(self, prompt: str, config_or_name: ConfigLike = None) -> str:
        """Free-text answer; raises GenerationError on exhaustion."""
        result = await self.invoke(prompt, config_or_name)
        return str(result.unwrap()["result"])

    async def quick_bool(self, prompt: str, config_or_name: ConfigLike = None) -> bool:
        """Yes/no answer; raises GenerationError on exhaustion."""
        result = await self.invoke(prompt, config_or_name, schema=BoolAnswer)
        return result.unwrap()["answer"] is True

    async def quick_json(
        self, prompt: str, schema: Type[BaseModel], config_or_name: ConfigLike = None
    ) -> Dict[str, Any]:
        """Validated dict for ``schema``; raises GenerationError on exhaustion."""
        result = await self.invoke(prompt, config_or_name, schema=schema)
        return result.unwrap()


_default_client: Optional[GenerationClient] = None


def get_default_client() -> GenerationClient:
    """Process-wide client used by the module-level ``invoke``."""
    global _default_client
    if _default_client is None:
        _default_client = GenerationClient()
    return _default_client


async def invoke(
    prompt: str,
    config_or_name: ConfigLike = None,
    **options: Any,
) -> InvocationResult:
    """Shortcut for ``get_default_client().invoke(...)``."""
    return await get_default_client().invoke(prompt, config_or_name, **options)


__all__ = [
    "GenerationClient",
    "InvocationRequest",
    "InvocationResult",
    "RetryPolicy",
    "AttemptOutcome",
    "TextResult",
    "BoolAnswer",
    "DEFAULT_MAX_RETRIES",
    "format_validation_error",
    "get_default_client",
    "invoke",
]
