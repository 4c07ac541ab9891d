"""
AI Provider API Implementations

All built-in providers (OpenAI, DeepSeek, Gemini) and custom providers are
reached through the OpenAI-compatible chat-completions format, asking for a
JSON object response.

Each function takes an AIService instance and returns the text response.
"""

from typing import Any, Dict

import httpx

from polygot.config import PROVIDER_DEFAULTS
from polygot.exceptions import TranslationError
from polygot.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TEMPERATURE = 0.3


def get_httpx_timeout(timeout_config: Any) -> httpx.Timeout:
    """
    Convert timeout configuration to httpx.Timeout object.

    Args:
        timeout_config: Either a number (read timeout) or a dict with
            connect, write, read, pool keys

    Returns:
        httpx.Timeout object
    """
    if isinstance(timeout_config, dict):
        return httpx.Timeout(
            connect=timeout_config.get('connect', 10.0),
            write=timeout_config.get('write', 60.0),
            read=timeout_config.get('read', 120.0),
            pool=timeout_config.get('pool', 10.0),
        )
    else:
        timeout_value = float(timeout_config) if timeout_config else 120.0
        return httpx.Timeout(
            connect=10.0,
            write=60.0,
            read=timeout_value,
            pool=10.0,
        )


def handle_http_error(e: httpx.HTTPStatusError, provider: str):
    """Raise a TranslationError carrying the provider's error message."""
    status_code = e.response.status_code
    error_text = "Unknown error"

    try:
        error_json = e.response.json()
        if isinstance(error_json, dict) and "error" in error_json:
            error_detail = error_json["error"]
            if isinstance(error_detail, dict):
                error_text = error_detail.get("message", str(error_detail))
            else:
                error_text = str(error_detail)
    except ValueError:
        error_text = e.response.text[:500] if e.response.text else "No details"

    raise TranslationError(
        f"{provider} API error ({status_code}): {error_text}",
        code="provider_http_error",
        details={"provider": provider, "status_code": status_code},
    )


def build_chat_body(model: str, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "response_format": {"type": "json_object"},
        "temperature": DEFAULT_TEMPERATURE,
    }


def _post(service, api_url: str, headers: Dict[str, str], body: Dict[str, Any], timeout: Any) -> httpx.Response:
    if service.http_client is not None:
        response = service.http_client.post(api_url, headers=headers, json=body)
    else:
        with httpx.Client(timeout=get_httpx_timeout(timeout)) as client:
            response = client.post(api_url, headers=headers, json=body)
    response.raise_for_status()
    return response


def call_chat_completions_json(service, system_prompt: str, user_prompt: str) -> str:
    """
    Call an OpenAI-compatible chat-completions endpoint in JSON mode.

    Records token usage on the service and returns the message content.
    """
    provider = service.provider
    provider_config = service.config.get(provider, {})
    model = service.get_model()
    timeout = provider_config.get('timeout', PROVIDER_DEFAULTS['timeout'])
    api_url = provider_config.get('api_url', '')

    if not api_url:
        raise TranslationError(
            f"Provider '{provider}' API URL not configured",
            code="ai_config_missing",
            details={"provider": provider, "missing_field": "api_url"},
        )

    headers = {
        "Authorization": f"Bearer {service.api_key}",
        "Content-Type": "application/json"
    }

    body = build_chat_body(model, system_prompt, user_prompt)

    logger.debug(f"  Calling {provider} API (model: {model})...")

    try:
        response = _post(service, api_url, headers, body, timeout)
        result = response.json()
    except httpx.HTTPStatusError as e:
        handle_http_error(e, provider)
    except httpx.TimeoutException:
        raise TranslationError(f"{provider} API request timeout", code="provider_timeout")
    except httpx.HTTPError as e:
        raise TranslationError(f"{provider} API call failed: {e}", code="provider_unreachable")
    except ValueError as e:
        raise TranslationError(f"{provider} API returned invalid JSON: {e}", code="provider_bad_response")

    # Extract token usage
    usage = result.get('usage') or {}
    service._last_token_usage = {
        'prompt_tokens': usage.get('prompt_tokens', 0),
        'completion_tokens': usage.get('completion_tokens', 0),
        'total_tokens': usage.get('total_tokens', 0),
    }
    service.accumulate_tokens()

    choices = result.get('choices') or []
    if choices:
        content = (choices[0].get('message') or {}).get('content') or ''
        logger.debug(f"  Received {len(content)} chars from {provider} (tokens: {service._last_token_usage})")
        return content

    raise TranslationError(f"No content in {provider} response", code="provider_bad_response")
