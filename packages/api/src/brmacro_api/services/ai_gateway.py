"""Client for the OpenAI-compatible chat completions gateway.

complete() never raises. Every outcome is an Ok carrying the assistant
message content or an Err carrying a GenerationErrorKind:

    429                          -> RATE_LIMITED
    402                          -> QUOTA_EXHAUSTED
    other non-2xx, transport
    error, missing content       -> GENERIC

Requests are not retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

import httpx
import structlog

from brmacro_shared.config import settings

logger = structlog.get_logger()


class GenerationErrorKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    QUOTA_EXHAUSTED = "quota_exhausted"
    GENERIC = "generic"


@dataclass(frozen=True)
class Ok:
    content: str


@dataclass(frozen=True)
class Err:
    kind: GenerationErrorKind
    detail: str = ""


GatewayResult = Union[Ok, Err]

_STATUS_KINDS: dict[int, GenerationErrorKind] = {
    429: GenerationErrorKind.RATE_LIMITED,
    402: GenerationErrorKind.QUOTA_EXHAUSTED,
}


def build_payload(system_prompt: str, user_prompt: str) -> dict:
    return {
        "model": settings.ai_model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "temperature": settings.ai_temperature,
        "response_format": {"type": "json_object"},
    }


async def complete(
    system_prompt: str,
    user_prompt: str,
    *,
    client: httpx.AsyncClient | None = None,
) -> GatewayResult:
    """Send one chat completion request and classify the outcome."""
    if not settings.ai_gateway_key:
        logger.error("ai_gateway_not_configured")
        return Err(GenerationErrorKind.GENERIC, "AI gateway key not configured")

    headers = {
        "Authorization": f"Bearer {settings.ai_gateway_key}",
        "Content-Type": "application/json",
    }
    payload = build_payload(system_prompt, user_prompt)

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=settings.ai_timeout_s) as owned:
                response = await owned.post(settings.ai_gateway_url, json=payload, headers=headers)
        else:
            response = await client.post(settings.ai_gateway_url, json=payload, headers=headers)
    except httpx.HTTPError as exc:
        logger.error("ai_gateway_transport_error", error=str(exc))
        return Err(GenerationErrorKind.GENERIC, f"AI gateway unreachable: {exc}")

    if response.status_code in _STATUS_KINDS:
        kind = _STATUS_KINDS[response.status_code]
        logger.warning("ai_gateway_refused", status=response.status_code, kind=kind.value)
        return Err(kind, f"AI gateway error: {response.status_code}")

    if not response.is_success:
        logger.error("ai_gateway_error", status=response.status_code, body=response.text[:500])
        return Err(GenerationErrorKind.GENERIC, f"AI gateway error: {response.status_code}")

    try:
        content = response.json()["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError):
        content = None

    if not content or not isinstance(content, str):
        logger.error("ai_gateway_empty_content")
        return Err(GenerationErrorKind.GENERIC, "No content in AI response")

    return Ok(content)
