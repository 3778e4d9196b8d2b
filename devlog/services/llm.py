"""Text-generation client for the summary model (Ollama chat API)."""

import json
import logging
from collections.abc import Callable

import httpx

from devlog.config import get_app_config, get_settings
from devlog.exceptions import GenerationError
from devlog.services.prompt import SYSTEM_MESSAGE

logger = logging.getLogger(__name__)


class GenerationClient:
    """Single-attempt client for the text-generation service.

    Every call requests the same model and the same output budget. Retries
    are left to the caller.
    """

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        summary_config = get_app_config().summary
        self.base_url = (base_url or settings.llm_base_url).rstrip("/")
        self.model = model or settings.llm_model
        self.max_tokens = max_tokens or summary_config["max_output_tokens"]
        self.temperature = (
            temperature if temperature is not None else summary_config["temperature"]
        )
        self.timeout = timeout or settings.llm_timeout_seconds
        self._transport = transport

    def _client(self, timeout: float | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout or self.timeout, transport=self._transport)

    def _payload(self, prompt: str, stream: bool) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_MESSAGE},
                {"role": "user", "content": prompt},
            ],
            "stream": stream,
            "format": "json",
            "options": {
                "temperature": self.temperature,
                "num_predict": self.max_tokens,
            },
        }

    async def generate(self, prompt: str) -> str:
        """Send the prompt and return the model's raw text.

        Raises:
            GenerationError: on transport failure, timeout, non-2xx status,
                a malformed response body or empty content.
        """
        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self.base_url}/api/chat", json=self._payload(prompt, stream=False)
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Generation service returned {e.response.status_code}")
            raise GenerationError(
                f"Generation service returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling generation service: {e}")
            raise GenerationError(f"Generation request failed: {e}") from e
        except ValueError as e:
            raise GenerationError("Generation service returned a non-JSON body") from e

        try:
            content = data["message"]["content"]
        except (KeyError, TypeError) as e:
            raise GenerationError("Generation response has no message content") from e

        if not isinstance(content, str) or not content.strip():
            raise GenerationError("Generation service returned an empty response")
        return content

    async def generate_stream(self, prompt: str, on_chunk: Callable[[str], None]) -> str:
        """Stream the model's response, calling ``on_chunk`` for each delta.

        Returns the concatenated text; error behaviour matches ``generate``.
        """
        parts: list[str] = []
        try:
            async with self._client() as client:
                async with client.stream(
                    "POST", f"{self.base_url}/api/chat", json=self._payload(prompt, stream=True)
                ) as response:
                    response.raise_for_status()
                    async for line in response.aiter_lines():
                        if not line.strip():
                            continue
                        event = json.loads(line)
                        delta = (event.get("message") or {}).get("content") or ""
                        if delta:
                            parts.append(delta)
                            on_chunk(delta)
                        if event.get("done"):
                            break
        except httpx.HTTPStatusError as e:
            logger.error(f"Generation service returned {e.response.status_code}")
            raise GenerationError(
                f"Generation service returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"HTTP error streaming from generation service: {e}")
            raise GenerationError(f"Generation stream failed: {e}") from e
        except json.JSONDecodeError as e:
            raise GenerationError("Generation stream contained a malformed event") from e

        content = "".join(parts)
        if not content.strip():
            raise GenerationError("Generation service returned an empty response")
        logger.debug(f"Streamed {len(parts)} chunks, {len(content)} characters")
        return content

    async def health_check(self) -> bool:
        """Check if the model server is reachable and the model is loaded."""
        try:
            async with self._client(timeout=10.0) as client:
                response = await client.get(f"{self.base_url}/api/tags")
                response.raise_for_status()
                data = response.json()
                models = [m["name"] for m in data.get("models", [])]
                return self.model in models or any(self.model in m for m in models)
        except (httpx.HTTPError, ValueError, KeyError):
            return False


def get_generation_client() -> GenerationClient:
    """Get a generation client configured from settings."""
    return GenerationClient()
