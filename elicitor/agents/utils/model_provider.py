"""Multi-provider model factory for the extraction agent.

Dispatches to the matching Strands SDK model class based on the
``LLM_PROVIDER`` environment variable (default: ``bedrock``). Non-Bedrock
providers import lazily because their client packages are optional extras.

Resolution order for model IDs:
  1. Explicit ``model_id`` argument
  2. ``{PROVIDER}_{TIER}_MODEL_ID`` env var  (e.g. ``ANTHROPIC_LIGHT_MODEL_ID``)
  3. ``PROVIDER_DEFAULTS``
"""

import logging
import os
from collections.abc import Callable
from enum import Enum
from typing import Any

from botocore.config import Config

logger = logging.getLogger(__name__)


class LLMProvider(Enum):
    """Supported LLM providers."""

    BEDROCK = "bedrock"
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    OLLAMA = "ollama"


PROVIDER_DEFAULTS: dict[LLMProvider, dict[str, str]] = {
    LLMProvider.BEDROCK: {
        "heavy": "anthropic.claude-3-5-sonnet-20241022-v2:0",
        "light": "anthropic.claude-3-5-haiku-20241022-v1:0",
    },
    LLMProvider.ANTHROPIC: {
        "heavy": "claude-sonnet-4-20250514",
        "light": "claude-3-5-haiku-20241022",
    },
    LLMProvider.OPENAI: {
        "heavy": "gpt-4o",
        "light": "gpt-4o-mini",
    },
    LLMProvider.OLLAMA: {
        "heavy": "llama3.1:70b",
        "light": "llama3.1:8b",
    },
}

_VALID_TIERS = {"heavy", "light"}


def get_active_provider() -> LLMProvider:
    """Return the active LLM provider from the ``LLM_PROVIDER`` env var.

    Raises:
        ValueError: If the env var value is not a recognised provider.
    """
    raw = os.getenv("LLM_PROVIDER", "bedrock").strip().lower()
    try:
        return LLMProvider(raw)
    except ValueError:
        valid = ", ".join(p.value for p in LLMProvider)
        raise ValueError(f"Unknown LLM_PROVIDER '{raw}'. Valid options: {valid}") from None


def get_model_id_for_tier(tier: str) -> str:
    """Return the model ID for a tier, respecting the active provider.

    Args:
        tier: ``"heavy"`` or ``"light"``.

    Raises:
        ValueError: If the tier is invalid.
    """
    if tier not in _VALID_TIERS:
        raise ValueError(
            f"Invalid tier '{tier}'. Must be one of: {', '.join(sorted(_VALID_TIERS))}"
        )

    provider = get_active_provider()
    env_key = f"{provider.value.upper()}_{tier.upper()}_MODEL_ID"
    from_env = os.getenv(env_key)
    if from_env:
        return from_env

    default_id = PROVIDER_DEFAULTS[provider][tier]
    logger.info(f"Using default model for {provider.value}/{tier}: {default_id}")
    return default_id


# ---------------------------------------------------------------------------
# Provider factory registry
# ---------------------------------------------------------------------------

_PROVIDER_FACTORIES: dict[LLMProvider, Callable[..., Any]] = {}


def _register_provider(provider: LLMProvider):
    """Decorator to register a provider factory function."""

    def decorator(fn):
        _PROVIDER_FACTORIES[provider] = fn
        return fn

    return decorator


_BEDROCK_ONLY_KWARGS = ("read_timeout", "connect_timeout", "region_name")


def _strip_bedrock_kwargs(kwargs: dict) -> None:
    for key in _BEDROCK_ONLY_KWARGS:
        kwargs.pop(key, None)


@_register_provider(LLMProvider.BEDROCK)
def _create_bedrock(
    model_id,
    max_tokens,
    streaming,
    temperature,
    read_timeout: float = 60.0,
    connect_timeout: float = 10.0,
    region_name: str | None = None,
    **kwargs,
):
    from strands.models.bedrock import BedrockModel

    region_name = region_name or os.getenv("AWS_REGION")
    if not region_name:
        raise ValueError(
            "region_name not provided and AWS_REGION environment variable is not set."
        )

    # Transport-level retries only; a failed call degrades extraction instead
    boto_config = Config(
        read_timeout=read_timeout,
        connect_timeout=connect_timeout,
        retries={"max_attempts": 3, "mode": "standard"},
    )

    logger.info(
        f"Creating BedrockModel: model={model_id}, region={region_name}, "
        f"read_timeout={read_timeout}s, connect_timeout={connect_timeout}s"
    )

    return BedrockModel(
        model_id=model_id,
        region_name=region_name,
        boto_client_config=boto_config,
        streaming=streaming,
        temperature=temperature,
        max_tokens=max_tokens,
        **kwargs,
    )


@_register_provider(LLMProvider.ANTHROPIC)
def _create_anthropic(model_id, max_tokens, streaming, temperature, **kwargs):
    _strip_bedrock_kwargs(kwargs)
    from strands.models.anthropic import AnthropicModel

    client_args = {}
    api_key = os.getenv("ANTHROPIC_API_KEY")
    if api_key:
        client_args["api_key"] = api_key

    return AnthropicModel(
        client_args=client_args or None,
        model_id=model_id,
        max_tokens=max_tokens,
        params={"temperature": temperature},
    )


@_register_provider(LLMProvider.OPENAI)
def _create_openai(model_id, max_tokens, streaming, temperature, **kwargs):
    _strip_bedrock_kwargs(kwargs)
    from strands.models.openai import OpenAIModel

    client_args = {}
    api_key = os.getenv("OPENAI_API_KEY")
    if api_key:
        client_args["api_key"] = api_key

    return OpenAIModel(
        client_args=client_args or None,
        model_id=model_id,
        params={"max_tokens": max_tokens, "temperature": temperature},
    )


@_register_provider(LLMProvider.OLLAMA)
def _create_ollama(model_id, max_tokens, streaming, temperature, **kwargs):
    _strip_bedrock_kwargs(kwargs)
    from strands.models.ollama import OllamaModel

    return OllamaModel(
        host=os.getenv("OLLAMA_HOST", "http://localhost:11434"),
        model_id=model_id,
        max_tokens=max_tokens,
        temperature=temperature,
    )


def create_model(
    model_id: str | None = None,
    tier: str = "light",
    max_tokens: int = 2000,
    streaming: bool = False,
    temperature: float = 0.2,
    **kwargs,
):
    """Create a model instance for the active provider.

    Args:
        model_id: Model identifier. Resolved from tier + provider defaults when ``None``.
        tier: Model tier for ID resolution.
        max_tokens: Maximum response tokens.
        streaming: Enable streaming.
        temperature: Sampling temperature. Extraction wants low variance.
        **kwargs: Provider-specific extras (e.g. ``read_timeout`` for Bedrock).

    Returns:
        A Strands ``Model`` instance.
    """
    provider = get_active_provider()

    if model_id is None:
        model_id = get_model_id_for_tier(tier)

    logger.info(
        f"Creating {provider.value} model: model_id={model_id}, tier={tier}, max_tokens={max_tokens}"
    )

    return _PROVIDER_FACTORIES[provider](
        model_id=model_id,
        max_tokens=max_tokens,
        streaming=streaming,
        temperature=temperature,
        **kwargs,
    )
