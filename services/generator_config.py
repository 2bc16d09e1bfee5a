"""
Content generator configuration resolution.

Turns a model hint, a requested auth mode and an environment snapshot into
an immutable ContentGeneratorConfig that the factory can build from.
"""

import asyncio
import dataclasses
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Mapping, Optional, Set

from providers.gemini_adapter import DEFAULT_GEMINI_MODEL, GEMINI_MODEL_TOKEN
from providers.model_check import get_effective_model
from providers.types import Provider

logger = logging.getLogger(__name__)


class AuthType(str, Enum):
    LOGIN_WITH_GOOGLE = "oauth-personal"
    USE_GEMINI = "gemini-api-key"
    USE_VERTEX_AI = "vertex-ai"
    CLOUD_SHELL = "cloud-shell"
    USE_OPENAI = "openai-api-key"
    USE_ANTHROPIC = "anthropic-api-key"
    USE_META_LLAMA = "meta-llama-api-key"


# Auth modes whose credential is handled by the login collaborator
MANAGED_AUTH_TYPES = {AuthType.LOGIN_WITH_GOOGLE, AuthType.CLOUD_SHELL}

# Default model per secondary provider, used when the current model is a Gemini one
DEFAULT_OPENAI_MODEL = "gpt-4o"
DEFAULT_ANTHROPIC_MODEL = "claude-3-5-sonnet-20241022"
DEFAULT_META_LLAMA_MODEL = "llama-3.1-70b-instruct"


@dataclass(frozen=True)
class EnvironmentSnapshot:
    """Credential variables read once from the environment."""

    gemini_api_key: Optional[str] = None
    google_api_key: Optional[str] = None
    google_cloud_project: Optional[str] = None
    google_cloud_location: Optional[str] = None
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    meta_api_key: Optional[str] = None

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> "EnvironmentSnapshot":
        """
        Read every known credential variable.

        Empty values count as absent. For aliased variables the first name wins.

        Args:
            environ: Mapping to read from (default: os.environ)
        """
        env = os.environ if environ is None else environ

        def get(*names: str) -> Optional[str]:
            for name in names:
                value = env.get(name)
                if value:
                    return value
            return None

        return cls(
            gemini_api_key=get("GEMINI_API_KEY"),
            google_api_key=get("GOOGLE_API_KEY"),
            google_cloud_project=get("GOOGLE_CLOUD_PROJECT"),
            google_cloud_location=get("GOOGLE_CLOUD_LOCATION"),
            openai_api_key=get("OPENAI_API_KEY"),
            anthropic_api_key=get("ANTHROPIC_API_KEY", "CLAUDE_API_KEY"),
            meta_api_key=get("META_API_KEY", "LLAMA_API_KEY"),
        )


@dataclass(frozen=True)
class ContentGeneratorConfig:
    model: str
    auth_type: Optional[AuthType] = None
    api_key: Optional[str] = None
    vertexai: Optional[bool] = None
    proxy: Optional[str] = None
    provider: Optional[Provider] = None


# auth mode -> (env snapshot attribute, provider, default model)
SECONDARY_PROVIDERS = {
    AuthType.USE_OPENAI: ("openai_api_key", Provider.OPENAI, DEFAULT_OPENAI_MODEL),
    AuthType.USE_ANTHROPIC: ("anthropic_api_key", Provider.ANTHROPIC, DEFAULT_ANTHROPIC_MODEL),
    AuthType.USE_META_LLAMA: ("meta_api_key", Provider.META, DEFAULT_META_LLAMA_MODEL),
}

# (api_key, model, proxy) -> effective model
ModelCheck = Callable[[str, str, Optional[str]], Awaitable[str]]

# Strong references to running checks; the event loop only keeps weak ones
_model_checks: Set[asyncio.Task] = set()


async def _report_effective_model(
    model_check: ModelCheck, api_key: str, model: str, proxy: Optional[str]
) -> None:
    try:
        effective_model = await model_check(api_key, model, proxy)
    except Exception as e:
        logger.warning(f"Effective-model check failed for {model}: {e}")
        return
    if effective_model != model:
        logger.info(f"Effective model for this key is {effective_model} (configured: {model})")


def start_model_check(
    model_check: ModelCheck, api_key: str, model: str, proxy: Optional[str] = None
) -> Optional[asyncio.Task]:
    """
    Schedule the effective-model check on the running event loop.

    The check's answer is only logged, so nothing waits for it. Without a
    running loop the check is skipped.

    Returns:
        asyncio.Task or None: The scheduled check
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.debug("No running event loop, skipping the effective-model check")
        return None

    task = loop.create_task(_report_effective_model(model_check, api_key, model, proxy))
    _model_checks.add(task)
    task.add_done_callback(_model_checks.discard)
    return task


def create_content_generator_config(
    model: Optional[str],
    auth_type: Optional[AuthType],
    env: Optional[EnvironmentSnapshot] = None,
    proxy: Optional[str] = None,
    model_check: ModelCheck = get_effective_model,
) -> ContentGeneratorConfig:
    """
    Resolve provider, model and credential for a session.

    Only the credential implied by `auth_type` is consulted. When it is
    absent the config comes back with no provider, to be resolved later.

    Args:
        model: Currently configured model, or None for the default
        auth_type: Requested auth mode
        env: Environment snapshot (default: read from os.environ)
        proxy: Proxy or base URL setting
        model_check: Effective-model check started in the background for the
            Gemini API-key mode; resolution never waits for it

    Returns:
        ContentGeneratorConfig: Resolved configuration
    """
    env = env or EnvironmentSnapshot.from_environ()

    config = ContentGeneratorConfig(
        model=model or DEFAULT_GEMINI_MODEL,
        auth_type=auth_type,
        proxy=proxy,
    )

    # Credential for these modes is handled by the login collaborator
    if auth_type in MANAGED_AUTH_TYPES:
        return dataclasses.replace(config, provider=Provider.GOOGLE)

    if auth_type == AuthType.USE_GEMINI and env.gemini_api_key:
        config = dataclasses.replace(
            config,
            api_key=env.gemini_api_key,
            vertexai=False,
            provider=Provider.GOOGLE,
        )
        start_model_check(model_check, config.api_key, config.model, config.proxy)
        return config

    if auth_type == AuthType.USE_VERTEX_AI and (
        env.google_api_key or (env.google_cloud_project and env.google_cloud_location)
    ):
        return dataclasses.replace(
            config,
            api_key=env.google_api_key,
            vertexai=True,
            provider=Provider.GOOGLE,
        )

    if auth_type in SECONDARY_PROVIDERS:
        key_attr, provider, default_model = SECONDARY_PROVIDERS[auth_type]
        api_key = getattr(env, key_attr)
        if api_key:
            resolved_model = config.model
            # A Gemini model name must not reach another provider's API
            if GEMINI_MODEL_TOKEN in resolved_model:
                logger.info(
                    f"Model {resolved_model} is a Gemini model, "
                    f"using {default_model} for {provider.value}"
                )
                resolved_model = default_model
            return dataclasses.replace(
                config, api_key=api_key, provider=provider, model=resolved_model
            )

    logger.debug(f"No credential found for auth type {auth_type}; provider left unset")
    return config
