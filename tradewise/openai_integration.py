import argparse
import asyncio
import os
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx
import openai
from openai import AsyncOpenAI

from tradewise.domain.errors import MissingCredential, NetworkFailure

DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_MAX_RETRIES = 0
SAMPLING_PARAMS = {
    "temperature": 0.7,
    "top_p": 0.9,
    "frequency_penalty": 0.2,
    "presence_penalty": 0.1,
}


@dataclass(frozen=True)
class CompletionRequest:
    model: str
    instructions: str
    max_tokens: int
    response_format: str = "text"


@dataclass(frozen=True)
class Completion:
    text: str
    total_tokens: int
    model: str = ""


class CompletionClient(Protocol):
    async def complete(self, request: CompletionRequest) -> Completion: ...


def ensure_api_key(api_key: Optional[str] = None) -> str:
    key = api_key or os.getenv("OPENAI_API_KEY")
    if not key:
        raise MissingCredential("Missing OpenAI API key")
    return key


def build_async_client(
    api_key: str, *, default_timeout_s: float = DEFAULT_TIMEOUT_SECONDS
) -> AsyncOpenAI:
    """Create an OpenAI async client with an explicit httpx timeout.

    Env Vars:
        OPENAI_BASE_URL, OPENAI_ORG, OPENAI_PROJECT (optional)
        OPENAI_TIMEOUT_SECONDS (optional timeout override)
        OPENAI_MAX_RETRIES (optional, defaults to no retry)
    """
    timeout_override = os.getenv("OPENAI_TIMEOUT_SECONDS")
    timeout_val = float(timeout_override) if timeout_override else float(default_timeout_s)
    max_retries = int(os.getenv("OPENAI_MAX_RETRIES", str(DEFAULT_MAX_RETRIES)))

    http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(timeout_val, connect=30.0, read=timeout_val, write=timeout_val)
    )
    return AsyncOpenAI(
        api_key=api_key,
        base_url=os.getenv("OPENAI_BASE_URL") or None,
        organization=os.getenv("OPENAI_ORG") or None,
        project=os.getenv("OPENAI_PROJECT") or None,
        http_client=http_client,
        timeout=timeout_val,
        max_retries=max_retries,
    )


class OpenAICompletionClient:
    """Send one compiled prompt as a system message and report token usage."""

    def __init__(self, api_key: Optional[str] = None, *, client: Optional[AsyncOpenAI] = None):
        self._client = client or build_async_client(ensure_api_key(api_key))

    async def complete(self, request: CompletionRequest) -> Completion:
        kwargs = dict(SAMPLING_PARAMS)
        if request.response_format == "json":
            kwargs["response_format"] = {"type": "json_object"}
        try:
            response = await self._client.chat.completions.create(
                model=request.model,
                messages=[{"role": "system", "content": request.instructions}],
                max_tokens=request.max_tokens,
                **kwargs,
            )
        except (openai.APIError, httpx.HTTPError) as exc:
            raise NetworkFailure(f"Completion request failed: {exc}") from exc

        usage = getattr(response, "usage", None)
        total_tokens = int(getattr(usage, "total_tokens", 0) or 0)
        content = response.choices[0].message.content if response.choices else None
        return Completion(text=content or "", total_tokens=total_tokens, model=response.model or request.model)

    async def aclose(self) -> None:
        await self._client.close()


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Send a prompt to the completion API")
    parser.add_argument("prompt", nargs="+", help="Prompt to send")
    parser.add_argument("--model", dest="model", default="gpt-3.5-turbo", help="Model to use")
    parser.add_argument("--json", dest="json_mode", action="store_true", help="Request a JSON object")
    parser.add_argument("--max-tokens", dest="max_tokens", type=int, default=500)
    args = parser.parse_args(argv)

    async def _run() -> Completion:
        client = OpenAICompletionClient()
        try:
            return await client.complete(
                CompletionRequest(
                    model=args.model,
                    instructions=" ".join(args.prompt),
                    max_tokens=args.max_tokens,
                    response_format="json" if args.json_mode else "text",
                )
            )
        finally:
            await client.aclose()

    completion = asyncio.run(_run())
    print(completion.text)
    print(f"[openai_integration] total_tokens={completion.total_tokens}")


if __name__ == "__main__":  # pragma: no cover
    main()
