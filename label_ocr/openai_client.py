import logging
from typing import Dict, Tuple

from openai import AsyncOpenAI

from label_ocr.config import OPENROUTER_API_KEY, OPENROUTER_APP_TITLE, OPENROUTER_APP_URL

logger = logging.getLogger(__name__)

# Only clients for the configured key live here; keys sent with a request
# get a short-lived client, so the map is bounded by the configured endpoints.
_clients: Dict[Tuple[str, str, float], AsyncOpenAI] = {}


def build_openrouter_client(api_key: str, base_url: str, timeout: float) -> AsyncOpenAI:
    return AsyncOpenAI(
        api_key=api_key,
        base_url=base_url,
        timeout=timeout,
        max_retries=0,
        default_headers={
            "HTTP-Referer": OPENROUTER_APP_URL,
            "X-Title": OPENROUTER_APP_TITLE,
        },
    )


def get_openrouter_client(api_key: str, base_url: str, timeout: float) -> AsyncOpenAI:
    """
    OpenAI-compatible client for one request.

    The configured OPENROUTER_API_KEY shares one cached client per
    (endpoint, timeout). Any other key gets a fresh client that the caller
    hands back to release_openrouter_client() when done.
    """
    if not OPENROUTER_API_KEY or api_key != OPENROUTER_API_KEY:
        return build_openrouter_client(api_key, base_url, timeout)

    key = (api_key, base_url, timeout)
    client = _clients.get(key)
    if client is None:
        logger.info("Initializing OpenRouter client for %s", base_url)
        client = build_openrouter_client(api_key, base_url, timeout)
        _clients[key] = client
    return client


async def release_openrouter_client(client: AsyncOpenAI) -> None:
    """Close a per-request client; cached clients stay open."""
    if any(client is cached for cached in _clients.values()):
        return
    await client.close()


async def close_openrouter_clients() -> None:
    """Close every cached client. Safe to call when none exist."""
    clients = list(_clients.values())
    _clients.clear()
    for client in clients:
        await client.close()
