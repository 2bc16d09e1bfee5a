"""
Effective-model check for the Gemini API-key path.

Tries the configured default model with a one-token request and reports
the flash model when the default is currently rate limited.
"""

import logging
from typing import Optional

import httpx

from providers.gemini_adapter import DEFAULT_GEMINI_FLASH_MODEL, DEFAULT_GEMINI_MODEL

logger = logging.getLogger(__name__)

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models"
CHECK_TIMEOUT = 2.0


async def get_effective_model(
    api_key: str, current_model: str, proxy: Optional[str] = None
) -> str:
    """
    Return the model this session should actually use.

    Only the default model is checked. A 429 answer means it is temporarily
    unavailable and the flash model is returned; every other outcome,
    including network errors and timeouts, keeps the current model.

    Args:
        api_key: Gemini API key
        current_model: Model currently configured
        proxy: Optional HTTPS proxy URL

    Returns:
        str: The model to use
    """
    if current_model != DEFAULT_GEMINI_MODEL:
        return current_model

    url = f"{GEMINI_API_URL}/{current_model}:generateContent"
    payload = {
        "contents": [{"parts": [{"text": "test"}]}],
        "generationConfig": {
            "maxOutputTokens": 1,
            "temperature": 0,
            "topK": 1,
            "thinkingConfig": {"thinkingBudget": 128, "includeThoughts": False},
        },
    }

    try:
        async with httpx.AsyncClient(proxy=proxy, timeout=CHECK_TIMEOUT) as client:
            response = await client.post(url, params={"key": api_key}, json=payload)
    except httpx.HTTPError as e:
        logger.debug(f"Effective-model check failed, keeping {current_model}: {e}")
        return current_model

    if response.status_code == 429:
        logger.info(
            f"Your configured model ({current_model}) was temporarily unavailable. "
            f"Switched to {DEFAULT_GEMINI_FLASH_MODEL} for this session."
        )
        return DEFAULT_GEMINI_FLASH_MODEL
    return current_model
