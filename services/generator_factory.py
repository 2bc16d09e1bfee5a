"""
Generator factory - builds the content generator for a resolved config.

Performs no network I/O; every failure here is a local validation failure.
"""

import logging
import os
import platform
import sys
from typing import Callable, Dict, Optional

from providers.anthropic_adapter import AnthropicAdapter
from providers.base import ContentGenerator
from providers.exceptions import ConfigurationError, UnsupportedAuthType
from providers.gemini_adapter import GeminiGenerator
from providers.meta_llama_adapter import DEFAULT_BASE_URL as META_LLAMA_BASE_URL
from providers.meta_llama_adapter import MetaLlamaAdapter
from providers.openai_adapter import OpenAIAdapter
from services.generator_config import (
    MANAGED_AUTH_TYPES,
    AuthType,
    ContentGeneratorConfig,
)

logger = logging.getLogger(__name__)

CLIENT_NAME = "ProviderBridge"

# Builds the generator for managed-login modes: (http_headers, auth_type) -> generator
LoginGeneratorFactory = Callable[[Dict[str, str], AuthType], ContentGenerator]


def build_http_headers(version: Optional[str] = None) -> Dict[str, str]:
    """Outbound headers identifying the client version and platform."""
    version = version or os.getenv("CLI_VERSION") or platform.python_version()
    return {
        "User-Agent": f"{CLIENT_NAME}/{version} ({sys.platform}; {platform.machine()})"
    }


def _require_api_key(config: ContentGeneratorConfig, provider_name: str) -> str:
    if not config.api_key:
        raise ConfigurationError(
            f"{provider_name} API key is required but not provided",
            credential=f"{provider_name} API key",
        )
    return config.api_key


def create_content_generator(
    config: ContentGeneratorConfig,
    login_generator_factory: Optional[LoginGeneratorFactory] = None,
    version: Optional[str] = None,
) -> ContentGenerator:
    """
    Build the generator matching the config's auth mode.

    Args:
        config: Resolved configuration
        login_generator_factory: Collaborator for the managed-login modes
        version: Client version for the User-Agent header

    Returns:
        ContentGenerator: Ready-to-use generator

    Raises:
        ConfigurationError: If a required credential or collaborator is missing
        UnsupportedAuthType: If the auth mode matches no generator
    """
    auth_type = config.auth_type
    http_headers = build_http_headers(version)

    if auth_type in MANAGED_AUTH_TYPES:
        if login_generator_factory is None:
            raise ConfigurationError(
                f"Auth type {auth_type.value} requires a login client but none was configured",
                credential="login client",
            )
        return login_generator_factory(http_headers, auth_type)

    if auth_type in (AuthType.USE_GEMINI, AuthType.USE_VERTEX_AI):
        generator = GeminiGenerator(
            api_key=config.api_key or None,
            vertexai=bool(config.vertexai),
            http_headers=http_headers,
        )
    elif auth_type == AuthType.USE_OPENAI:
        generator = OpenAIAdapter(
            _require_api_key(config, "OpenAI"), base_url=config.proxy
        )
    elif auth_type == AuthType.USE_ANTHROPIC:
        generator = AnthropicAdapter(_require_api_key(config, "Anthropic"))
    elif auth_type == AuthType.USE_META_LLAMA:
        # Together.ai unless the proxy setting points elsewhere
        generator = MetaLlamaAdapter(
            _require_api_key(config, "Meta Llama"),
            base_url=config.proxy or META_LLAMA_BASE_URL,
        )
    else:
        raise UnsupportedAuthType(auth_type)

    logger.info(f"Created {generator.name} content generator for model {config.model}")
    return generator
