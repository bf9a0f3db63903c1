import json
import logging
from typing import AsyncGenerator, AsyncIterator, Optional

import httpx

from blogosphere.core.config import settings
from blogosphere.core.exceptions import ServiceUnavailable, UpstreamError

logger = logging.getLogger(__name__)

DONE_MARKER = "[DONE]"

GENERATION_SAMPLING = {
    "temperature": 0.7,
    "top_p": 0.9,
    "frequency_penalty": 0.3,
    "presence_penalty": 0.3,
    "max_tokens": 4096,
}

SUMMARY_SAMPLING = {
    "temperature": 0.3,
    "top_p": 0.7,
    "frequency_penalty": 0,
    "presence_penalty": 0,
    "max_tokens": 1024,
}


def build_generation_prompt(topic: str, word_count: int) -> str:
    return f"""Write a comprehensive blog post about "{topic}".

Requirements:
- Target length: approximately {word_count} words
- Use engaging and informative tone
- Include an introduction, main body with key points, and conclusion
- Use Markdown formatting (headers, bold, lists, etc.)
- Make it well-structured and easy to read
- Include relevant examples or insights where appropriate

Please write the blog post now:"""


def build_summary_prompt(content: str) -> str:
    return f"""Please provide a concise and clear summary of the following blog post content.

The summary should:
- Be significantly shorter than the original (aim for 3-5 sentences)
- Capture the main ideas and key points
- Be easy to understand
- Maintain a professional tone

Content to summarize:
{content}

Please provide the summary now:"""


def parse_stream_line(line: str) -> str:
    """Extrae el texto incremental de una línea SSE del proveedor.

    Devuelve DONE_MARKER al final del stream, "" si la línea no aporta texto.
    """
    line = line.strip()
    if not line.startswith("data:"):
        return ""

    data = line[len("data:"):].strip()
    if data == DONE_MARKER:
        return DONE_MARKER

    try:
        chunk = json.loads(data)
    except ValueError:
        logger.debug("Línea de stream no es JSON: %r", data[:100])
        return ""

    choices = chunk.get("choices") or []
    if not choices:
        return ""
    delta = choices[0].get("delta") or {}
    return delta.get("content") or ""


class CompletionClient:
    """Cliente de streaming para una API de chat completions compatible con OpenAI"""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._transport = transport

    async def stream(self, prompt: str, **sampling) -> AsyncIterator[str]:
        """Genera los fragmentos de texto a medida que llegan"""
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": True,
            **sampling,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "text/event-stream",
        }

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport
            ) as client:
                async with client.stream(
                    "POST", "/chat/completions", json=payload, headers=headers
                ) as response:
                    if response.status_code >= 400:
                        await response.aread()
                        raise UpstreamError(
                            f"Completion service returned {response.status_code}"
                        )

                    async for line in response.aiter_lines():
                        fragment = parse_stream_line(line)
                        if fragment == DONE_MARKER:
                            break
                        if fragment:
                            yield fragment
        except httpx.HTTPError as e:
            raise UpstreamError(f"Completion service error: {e}") from e


def get_completion_client() -> CompletionClient:
    """Dependency: cliente configurado desde settings"""
    if not settings.AI_API_KEY:
        raise ServiceUnavailable("AI service is not configured")

    return CompletionClient(
        base_url=settings.AI_BASE_URL,
        api_key=settings.AI_API_KEY,
        model=settings.AI_MODEL,
        timeout=settings.AI_TIMEOUT_SECONDS,
    )


def sse_event(payload) -> str:
    if isinstance(payload, str):
        return f"data: {payload}\n\n"
    return f"data: {json.dumps(payload)}\n\n"


async def start_stream(fragments: AsyncIterator[str]) -> Optional[str]:
    """Espera el primer fragmento antes de abrir la respuesta HTTP.

    Un fallo aquí (UpstreamError) todavía puede devolverse como error JSON.
    """
    try:
        return await fragments.__anext__()
    except StopAsyncIteration:
        return None


async def relay(
    first: Optional[str],
    fragments: AsyncGenerator[str, None],
    label: str
) -> AsyncIterator[str]:
    """Reenvía los fragmentos como eventos SSE y termina con [DONE].

    Si el proveedor falla a mitad de stream, lo ya enviado se queda y se
    cierra con un evento de error. Al terminar, o si el cliente se desconecta,
    se cierra también el stream del proveedor.
    """
    try:
        if first:
            yield sse_event({"content": first})
        async for fragment in fragments:
            yield sse_event({"content": fragment})
        yield sse_event(DONE_MARKER)
    except UpstreamError as e:
        logger.error("%s failed mid-stream: %s", label, e)
        yield sse_event({"error": f"{label} failed"})
    finally:
        await fragments.aclose()
