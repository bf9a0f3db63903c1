import logging
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from blogosphere.ai.schemas import (
    DEFAULT_WORD_COUNT, MAX_WORD_COUNT, MIN_SUMMARY_LENGTH, MIN_WORD_COUNT,
    GenerateContentRequest, SummarizeRequest
)
from blogosphere.ai.service import (
    GENERATION_SAMPLING, SUMMARY_SAMPLING, CompletionClient, build_generation_prompt,
    build_summary_prompt, get_completion_client, relay, start_stream
)
from blogosphere.auth.dependencies import get_current_user
from blogosphere.core.exceptions import UpstreamError, ValidationFailed
from blogosphere.core.rate_limit import ai_limit
from blogosphere.db.models import User

logger = logging.getLogger(__name__)

router = APIRouter()

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}

async def _stream_response(fragments, label: str, failure_message: str) -> StreamingResponse:
    try:
        first = await start_stream(fragments)
    except UpstreamError as e:
        logger.error("%s failed before streaming: %s", label, e)
        raise UpstreamError(failure_message) from e

    return StreamingResponse(
        relay(first, fragments, label),
        media_type="text/event-stream",
        headers=STREAM_HEADERS
    )

@router.post("/generate-content")
@ai_limit
async def generate_content(
    request: Request,
    request_data: GenerateContentRequest,
    current_user: User = Depends(get_current_user),
    client: CompletionClient = Depends(get_completion_client)
):
    """Generar un post en streaming a partir de un tema"""
    topic = (request_data.topic or "").strip()
    if not topic:
        raise ValidationFailed("Topic is required")

    word_count = request_data.word_count or DEFAULT_WORD_COUNT
    if word_count < MIN_WORD_COUNT or word_count > MAX_WORD_COUNT:
        raise ValidationFailed(
            f"Word count must be between {MIN_WORD_COUNT} and {MAX_WORD_COUNT}"
        )

    logger.info(
        "AI generate content - user: %s, topic: %s, words: %s",
        current_user.email, topic, word_count
    )

    fragments = client.stream(build_generation_prompt(topic, word_count), **GENERATION_SAMPLING)
    return await _stream_response(
        fragments, "Generation", "Failed to generate content. Please try again."
    )

@router.post("/summarize")
@ai_limit
async def summarize(
    request: Request,
    request_data: SummarizeRequest,
    current_user: User = Depends(get_current_user),
    client: CompletionClient = Depends(get_completion_client)
):
    """Resumir contenido en streaming"""
    content = request_data.content or ""
    if not content.strip():
        raise ValidationFailed("Content is required")

    if len(content) < MIN_SUMMARY_LENGTH:
        raise ValidationFailed("Content is too short to summarize")

    logger.info(
        "AI summarize - user: %s, content length: %s", current_user.email, len(content)
    )

    fragments = client.stream(build_summary_prompt(content), **SUMMARY_SAMPLING)
    return await _stream_response(
        fragments, "Summarization", "Failed to summarize content. Please try again."
    )
