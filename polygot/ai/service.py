"""
AI Translation Service Module

This module provides the translation capability used by the orchestrator:
- AIService class: one chunk in, a string->string mapping and token usage out
- System prompt construction
- Configuration validation
- Error handling and retry logic

For the HTTP call itself, see ai/providers.py
"""

import json
import time
from typing import Any, Dict, List, Optional, Tuple

import httpx

from polygot import language_codes as lc
from polygot.config import (
    BUILTIN_PROVIDERS,
    DEFAULT_MODEL,
    FORMATTING_REQUIREMENT,
    GLOSSARY_REQUIREMENT,
    PROVIDER_DEFAULTS,
    get_prompt,
    load_config,
    resolve_api_key,
)
from polygot.exceptions import MissingCredentialError, TranslationError
from polygot.logger import get_logger
from polygot.translation.utils import safe_parse_json_object

logger = get_logger(__name__)


def build_system_prompt(
    target_language: str,
    preserve_formatting: bool = True,
    tone: str = "neutral",
    context: str = "",
    use_glossary: bool = False,
) -> str:
    """
    Build the system instruction for one chunk.

    Args:
        target_language: Target language code
        preserve_formatting: Ask the model to keep placeholders/variables verbatim
        tone: Tone directive, omitted when 'neutral'
        context: Optional free-text context
        use_glossary: Add the glossary-token requirement

    Returns:
        The system prompt text
    """
    target_language_name = lc.get_language_name(target_language) or target_language

    requirements = ""
    if preserve_formatting:
        requirements += FORMATTING_REQUIREMENT
    if use_glossary:
        requirements += GLOSSARY_REQUIREMENT
    if tone and tone != "neutral":
        requirements += f"\n- Use a {tone} tone"
    if context:
        requirements += f"\n- Context: {context}"

    prompt_template = get_prompt('chunk_translation_prompt')['prompt']
    return prompt_template.format(
        target_language_name=target_language_name,
        requirements=requirements,
    )


def validate_ai_config(config: Dict[str, Any], provider: str) -> None:
    """
    Validate that AI provider configuration is properly set up.

    Raises:
        TranslationError: If the provider configuration is missing or has no model
    """
    provider_config = config.get(provider)
    if not isinstance(provider_config, dict) or not provider_config:
        kind = "AI provider" if provider in BUILTIN_PROVIDERS else "Custom AI provider"
        raise TranslationError(
            f"{kind} '{provider}' configuration not found",
            code="ai_config_missing",
            details={"provider": provider}
        )

    models = provider_config.get('models', [])
    model = provider_config.get('model', '')
    valid_models = [m for m in models if m and isinstance(m, str)] if isinstance(models, list) else []
    if not valid_models and not model:
        raise TranslationError(
            f"{provider} model not configured",
            code="ai_config_missing",
            details={"provider": provider, "missing_field": "models"}
        )


class AIService:
    """Chat-completions translation service."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_override: Optional[str] = None,
        provider_override: Optional[str] = None,
        config: Optional[Dict[str, Any]] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.config = config if config is not None else load_config()
        self.provider = provider_override if provider_override else self.config.get('ai_provider', 'openai')
        validate_ai_config(self.config, self.provider)

        self.api_key = resolve_api_key(api_key, self.config, self.provider)
        if not self.api_key:
            raise MissingCredentialError(
                f"No API key for provider '{self.provider}'. Pass one or set {self.provider.upper()}_API_KEY.",
                details={"provider": self.provider}
            )

        self.model_override = model_override
        self.http_client = http_client
        # Token usage tracking
        self._last_token_usage = {'prompt_tokens': 0, 'completion_tokens': 0, 'total_tokens': 0}
        self.total_prompt_tokens = 0
        self.total_completion_tokens = 0
        logger.debug(f"Initialized AI service with provider: {self.provider}, model: {self.get_model()}")

    def get_model(self) -> str:
        """
        Get the model to use for translation.

        Priority:
        1. model_override (if set)
        2. First model from 'models' array
        3. 'model' field
        4. DEFAULT_MODEL
        """
        if self.model_override:
            return self.model_override

        provider_config = self.config.get(self.provider, {})
        models = provider_config.get('models', [])
        if models and isinstance(models, list) and models[0]:
            return models[0]

        return provider_config.get('model') or DEFAULT_MODEL

    def get_last_token_usage(self) -> Dict[str, int]:
        """Get token usage from the last API call."""
        return self._last_token_usage.copy()

    def get_total_token_usage(self) -> Dict[str, int]:
        """Get accumulated token usage."""
        return {
            'prompt_tokens': self.total_prompt_tokens,
            'completion_tokens': self.total_completion_tokens,
        }

    def accumulate_tokens(self):
        """Add last call's tokens to total."""
        self.total_prompt_tokens += self._last_token_usage.get('prompt_tokens', 0)
        self.total_completion_tokens += self._last_token_usage.get('completion_tokens', 0)

    def translate_chunk(
        self,
        texts: List[str],
        target_language: str,
        system_prompt: str,
    ) -> Tuple[Dict[str, str], Dict[str, int]]:
        """
        Translate one chunk of strings.

        Args:
            texts: Strings to translate
            target_language: Target language code
            system_prompt: System instruction (see build_system_prompt)

        Returns:
            Tuple of (mapping of sent string -> translation, token usage)

        Raises:
            TranslationError: If every attempt fails
        """
        if not texts:
            return {}, {'prompt_tokens': 0, 'completion_tokens': 0, 'total_tokens': 0}

        from polygot.ai.providers import call_chat_completions_json

        user_prompt = json.dumps(texts, ensure_ascii=False, indent=2)
        logger.debug(f"Translating {len(texts)} strings to {target_language}")

        max_retries = max(1, int(self.config.get(self.provider, {}).get('max_retries', PROVIDER_DEFAULTS['max_retries'])))
        last_error = None

        for attempt in range(max_retries):
            try:
                if attempt > 0:
                    logger.info(f"  Retry attempt {attempt + 1}/{max_retries}")

                response_text = call_chat_completions_json(self, system_prompt, user_prompt)
                logger.debug(f"  Output from AI (response):\n{response_text}")

                translations = safe_parse_json_object(response_text)
                if translations is None:
                    raise TranslationError("Could not parse JSON object from response", code="provider_bad_response")

                return translations, self.get_last_token_usage()

            except TranslationError as e:
                last_error = e
                should_retry, wait_time = self._categorize_error(e, attempt)

                if should_retry and attempt < max_retries - 1:
                    logger.warning(f"  Attempt {attempt + 1} failed: {e}. Waiting {wait_time}s before retry...")
                    time.sleep(wait_time)
                elif not should_retry:
                    logger.error(f"  Non-recoverable error: {e}")
                    break

        raise TranslationError(
            f"Translation failed after {max_retries} attempts: {last_error}",
            code=getattr(last_error, 'code', None) or "translation_failed",
            details={"provider": self.provider, "strings": len(texts)},
        )

    def _categorize_error(self, error: Exception, attempt: int) -> Tuple[bool, float]:
        """
        Categorize an error and determine retry strategy.

        Returns:
            Tuple of (should_retry, wait_time_seconds)
        """
        error_str = str(error).lower()

        # Rate limiting (429) - long backoff
        if '429' in str(error) or 'rate limit' in error_str or 'too many requests' in error_str:
            wait_time = 30 * (2 ** attempt)  # 30s, 60s, 120s
            return True, min(wait_time, 300)  # Max 5 minutes

        # Authentication errors (401, 403) - don't retry
        if '401' in str(error) or '403' in str(error) or 'unauthorized' in error_str or 'forbidden' in error_str:
            return False, 0

        # Invalid request (400) - don't retry
        if '(400)' in str(error):
            return False, 0

        # Server errors (5xx) - standard backoff
        if any(code in str(error) for code in ['500', '502', '503', '504']):
            wait_time = 2 ** attempt
            return True, wait_time

        # Timeout - retry with backoff
        if 'timeout' in error_str:
            wait_time = 5 * (2 ** attempt)  # 5s, 10s, 20s
            return True, wait_time

        # Parse errors - retry once
        if 'parse' in error_str or 'json' in error_str:
            return attempt < 1, 1.0

        # Unknown errors - standard backoff
        return True, 2 ** attempt
