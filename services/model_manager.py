"""
ModelManager - Service holding the content generator for a session.

Resolves the configuration once, builds the generator through the factory,
and applies the system-prompt source to outgoing requests.
"""

import dataclasses
import logging
from typing import AsyncIterator, Callable, Dict, List, Optional

from providers.base import ContentGenerator
from providers.exceptions import ConfigurationError
from providers.model_check import get_effective_model
from providers.types import GenerateContentRequest, GenerateContentResponse
from services.generator_config import (
    AuthType,
    ContentGeneratorConfig,
    EnvironmentSnapshot,
    ModelCheck,
    create_content_generator_config,
)
from services.generator_factory import LoginGeneratorFactory, create_content_generator

logger = logging.getLogger(__name__)

# Returns the current system-instruction text, or None
SystemPromptSource = Callable[[], Optional[str]]

# Environment variables checked for each auth mode, for error messages
CREDENTIAL_VARIABLES: Dict[AuthType, str] = {
    AuthType.USE_GEMINI: "GEMINI_API_KEY",
    AuthType.USE_VERTEX_AI: "GOOGLE_API_KEY or GOOGLE_CLOUD_PROJECT + GOOGLE_CLOUD_LOCATION",
    AuthType.USE_OPENAI: "OPENAI_API_KEY",
    AuthType.USE_ANTHROPIC: "ANTHROPIC_API_KEY or CLAUDE_API_KEY",
    AuthType.USE_META_LLAMA: "META_API_KEY or LLAMA_API_KEY",
}


class ModelManager:
    """
    Manages the active content generator and handles switching between auth modes.

    Args:
        env: Environment snapshot (default: read from os.environ)
        system_prompt: Accessor for the current system prompt
        login_generator_factory: Collaborator for the managed-login modes
        model_check: Effective-model check for the Gemini API-key mode
    """

    def __init__(
        self,
        env: Optional[EnvironmentSnapshot] = None,
        system_prompt: Optional[SystemPromptSource] = None,
        login_generator_factory: Optional[LoginGeneratorFactory] = None,
        model_check: ModelCheck = get_effective_model,
    ):
        self.env = env or EnvironmentSnapshot.from_environ()
        self.system_prompt = system_prompt
        self.login_generator_factory = login_generator_factory
        self.model_check = model_check
        self.config: Optional[ContentGeneratorConfig] = None
        self.generator: Optional[ContentGenerator] = None

    def get_available_auth_types(self) -> List[AuthType]:
        """
        Auth modes whose credentials are present in the environment snapshot.

        Managed-login modes are always listed.
        """
        env = self.env
        available = [AuthType.LOGIN_WITH_GOOGLE, AuthType.CLOUD_SHELL]
        if env.gemini_api_key:
            available.append(AuthType.USE_GEMINI)
        if env.google_api_key or (env.google_cloud_project and env.google_cloud_location):
            available.append(AuthType.USE_VERTEX_AI)
        if env.openai_api_key:
            available.append(AuthType.USE_OPENAI)
        if env.anthropic_api_key:
            available.append(AuthType.USE_ANTHROPIC)
        if env.meta_api_key:
            available.append(AuthType.USE_META_LLAMA)
        return available

    def configure(
        self,
        auth_type: AuthType,
        model: Optional[str] = None,
        proxy: Optional[str] = None,
    ) -> ContentGeneratorConfig:
        """
        Resolve the config for `auth_type` and build its generator.

        Args:
            auth_type: Requested auth mode
            model: Currently configured model (default model when None)
            proxy: Proxy or base URL setting

        Returns:
            ContentGeneratorConfig: The resolved configuration

        Raises:
            ConfigurationError: If the mode's credential is missing
            UnsupportedAuthType: If the mode matches no generator
        """
        config = create_content_generator_config(
            model, auth_type, env=self.env, proxy=proxy, model_check=self.model_check
        )
        if config.provider is None and auth_type in CREDENTIAL_VARIABLES:
            variable = CREDENTIAL_VARIABLES[auth_type]
            raise ConfigurationError(
                f"No credential for {auth_type.value}: set {variable}",
                credential=variable,
            )

        self.generator = create_content_generator(
            config, login_generator_factory=self.login_generator_factory
        )
        self.config = config
        logger.info(f"Configured {auth_type.value} with model {config.model}")
        return config

    def _require_generator(self) -> ContentGenerator:
        if self.generator is None:
            raise ConfigurationError(
                "No content generator configured. Call configure() first."
            )
        return self.generator

    def _with_system_prompt(self, request: GenerateContentRequest) -> GenerateContentRequest:
        # A request's own system instruction always wins
        if self.system_prompt is None or request.config.system_instruction:
            return request
        text = self.system_prompt()
        if not text:
            return request
        return dataclasses.replace(
            request,
            config=dataclasses.replace(request.config, system_instruction=text),
        )

    async def generate(self, request: GenerateContentRequest) -> GenerateContentResponse:
        """
        Generate a response with the current generator.

        Raises:
            ConfigurationError: If no generator is configured
        """
        generator = self._require_generator()
        return await generator.generate_content(self._with_system_prompt(request))

    async def generate_stream(
        self, request: GenerateContentRequest
    ) -> AsyncIterator[GenerateContentResponse]:
        generator = self._require_generator()
        return await generator.generate_content_stream(self._with_system_prompt(request))

    def get_current_config(self) -> dict:
        """
        Get current configuration information.

        Returns:
            dict: auth_type, provider, model and provider_name (None when unset)
        """
        if self.config is None:
            return {
                "auth_type": None,
                "provider": None,
                "model": None,
                "provider_name": None,
            }

        return {
            "auth_type": self.config.auth_type.value if self.config.auth_type else None,
            "provider": self.config.provider.value if self.config.provider else None,
            "model": self.config.model,
            "provider_name": getattr(self.generator, "name", None),
        }
