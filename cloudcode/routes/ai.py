"""
AI Assistant Route

POST /api/v1/ai proxies explain / fix / generate / refactor requests to the
configured completion provider and records token usage.
"""

import logging
import sqlite3
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from cloudcode.auth.middleware import get_current_user
from cloudcode.core.exceptions import AINotConfiguredError, ValidationError
from cloudcode.db.utils import new_id, utc_now
from cloudcode.deps import get_db
from cloudcode.rate_limiter import RateLimit
from cloudcode.services.ai import AICompletion, AIProvider, build_user_message
from cloudcode.services.ai.prompts import AIAction

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/ai", tags=["ai"])

CODE_ACTIONS = ("explain", "fix", "refactor")


class AIRequest(BaseModel):
    action: AIAction
    code: Optional[str] = Field(None, max_length=10000)
    context: Optional[str] = Field(None, max_length=5000)
    prompt: Optional[str] = Field(None, max_length=1000)
    language: Optional[str] = Field(None, max_length=50)


class AIResponse(BaseModel):
    result: str
    action: str
    tokens_used: int
    latency_ms: int


def get_ai_provider(request: Request) -> AIProvider:
    return AIProvider(request.app.state.settings)


def log_ai_usage(
    conn: sqlite3.Connection,
    user_id: str,
    action: str,
    completion: AICompletion,
    latency_ms: int
) -> None:
    conn.execute("""
        INSERT INTO ai_usage_log (id, user_id, action, input_tokens, output_tokens, model, latency_ms, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
    """, (
        new_id(), user_id, action, completion.input_tokens, completion.output_tokens,
        completion.model, latency_ms, utc_now()
    ))
    conn.commit()


@router.post("", response_model=AIResponse)
async def ai_assist(
    body: AIRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    _: None = Depends(RateLimit("ai")),
    provider: AIProvider = Depends(get_ai_provider),
    conn: sqlite3.Connection = Depends(get_db),
) -> AIResponse:
    """
    Run a code assistant action

    - explain / fix / refactor require `code`
    - generate requires `prompt` (`context` is optional existing code)
    """
    if not provider.is_configured:
        raise AINotConfiguredError()

    if body.action in CODE_ACTIONS and not body.code:
        raise ValidationError("Code is required for this action", field="code")
    if body.action == "generate" and not body.prompt:
        raise ValidationError("Prompt is required for code generation", field="prompt")

    message = build_user_message(
        body.action,
        code=body.code or "",
        context=body.context,
        prompt=body.prompt,
        language=body.language,
    )

    started = time.monotonic()
    completion = await provider.complete(body.action, message)
    latency_ms = int((time.monotonic() - started) * 1000)

    log_ai_usage(conn, user["id"], body.action, completion, latency_ms)
    logger.info(
        f"AI {body.action} for user {user['id']}: {completion.tokens_used} tokens in {latency_ms}ms"
    )

    return AIResponse(
        result=completion.result,
        action=body.action,
        tokens_used=completion.tokens_used,
        latency_ms=latency_ms,
    )
