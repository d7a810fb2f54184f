"""
Model call adapter for the Anthropic Messages API.

One ModelClient is built at process start (API lifespan or CLI command),
shared by reference across concurrent generations, and closed on shutdown.
It wraps a single AsyncAnthropic connection pool; nothing here is global.
"""

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Dict, Generic, List, Optional, Sequence, Type, TypeVar, Union

import anthropic
from pydantic import BaseModel, ValidationError

from programgen.config import Settings
from programgen.exceptions import StructuredOutputError
from programgen.retry import with_retry
from programgen.schema_profile import (
    ANTHROPIC_TOOLS,
    SchemaCapabilities,
    provider_schema,
    render_constraint_block,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

OUTPUT_TOOL_NAME = "submit_result"
CHAT_MAX_OUTPUT_TOKENS = 4096

_FENCED_JSON = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?\s*```")
_BARE_JSON = re.compile(r"(\{[\s\S]*\}|\[[\s\S]*\])")


class ModelTier(str, Enum):
    """Which model a call runs on."""
    FAST = "fast"
    STANDARD = "standard"


@dataclass
class AgentCallResult(Generic[T]):
    """Validated structured output plus the tokens it cost (input + output)."""
    content: T
    tokens_used: int


@dataclass(frozen=True)
class SystemBlock:
    """One block of a multi-part system prompt."""
    text: str
    cache: bool = False


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str


def extract_json(text: str) -> str:
    """
    Pull a JSON document out of model text.

    Handles ```json fenced blocks and bare objects/arrays surrounded by prose.
    Falls back to the stripped text so json.loads reports the real problem.
    """
    fenced = _FENCED_JSON.search(text)
    if fenced:
        return fenced.group(1).strip()
    bare = _BARE_JSON.search(text)
    if bare:
        return bare.group(1).strip()
    return text.strip()


class ModelClient:
    """
    Structured and streaming access to the inference provider.

    Safe to share across concurrent pipeline runs: it holds no per-run state.
    """

    def __init__(
        self,
        client: anthropic.AsyncAnthropic,
        settings: Settings,
        capabilities: SchemaCapabilities = ANTHROPIC_TOOLS,
    ):
        """
        Initialize the adapter.

        Args:
            client: Connected AsyncAnthropic instance (owned by this adapter)
            settings: Model names, output budgets and retry bounds
            capabilities: Schema features the backend accepts
        """
        self._client = client
        self.settings = settings
        self.capabilities = capabilities

    @classmethod
    def from_settings(cls, settings: Settings) -> "ModelClient":
        """Create a client with its own AsyncAnthropic connection."""
        return cls(anthropic.AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY), settings)

    async def aclose(self) -> None:
        """Release the underlying HTTP connection pool."""
        await self._client.close()

    def model_for(self, tier: ModelTier) -> str:
        if tier == ModelTier.FAST:
            return self.settings.MODEL_FAST
        return self.settings.MODEL_STANDARD

    async def call_structured(
        self,
        system_prompt: str,
        user_message: str,
        output_model: Type[T],
        *,
        max_tokens: Optional[int] = None,
        tier: ModelTier = ModelTier.STANDARD,
        cache_system_prompt: bool = False,
    ) -> AgentCallResult[T]:
        """
        Ask the model for an object matching output_model.

        The schema is sent as a forced tool call. Transient provider errors
        are retried with backoff; malformed or invalid output is not.

        Args:
            system_prompt: Agent system prompt
            user_message: Stage input
            output_model: Pydantic model the output must validate against
            max_tokens: Output token cap (default: DEFAULT_MAX_OUTPUT_TOKENS)
            tier: Model tier to run on
            cache_system_prompt: Mark the system prompt as cacheable

        Returns:
            AgentCallResult with the validated object and tokens used

        Raises:
            StructuredOutputError: If the output can't be parsed or validated
            anthropic.APIError: If the provider fails non-transiently or retries run out
        """
        system_text = system_prompt + render_constraint_block(output_model, self.capabilities)
        system: Union[str, List[Dict[str, Any]]] = system_text
        if cache_system_prompt:
            system = [{"type": "text", "text": system_text, "cache_control": {"type": "ephemeral"}}]

        tool = {
            "name": OUTPUT_TOOL_NAME,
            "description": f"Submit the {output_model.__name__} result.",
            "input_schema": provider_schema(output_model, self.capabilities),
        }

        async def _create():
            return await self._client.messages.create(
                model=self.model_for(tier),
                max_tokens=max_tokens or self.settings.DEFAULT_MAX_OUTPUT_TOKENS,
                system=system,
                messages=[{"role": "user", "content": user_message}],
                tools=[tool],
                tool_choice={"type": "tool", "name": OUTPUT_TOOL_NAME},
            )

        response = await with_retry(
            _create,
            self.settings.MODEL_CALL_RETRIES,
            base_delay=self.settings.RETRY_BASE_DELAY_SECONDS,
        )

        usage = getattr(response, "usage", None)
        tokens_used = (getattr(usage, "input_tokens", 0) or 0) + (getattr(usage, "output_tokens", 0) or 0)

        try:
            content = self._validate_output(response, output_model)
        except StructuredOutputError as e:
            # The call was billed even though its output is unusable
            e.tokens_used = tokens_used
            raise
        logger.debug("%s call used %d tokens", output_model.__name__, tokens_used)
        return AgentCallResult(content=content, tokens_used=tokens_used)

    @classmethod
    def _validate_output(cls, response: Any, output_model: Type[T]) -> T:
        payload = cls._parse_payload(response)
        try:
            return output_model.model_validate(payload)
        except ValidationError as e:
            issues = "\n".join(
                f"  - {'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise StructuredOutputError(
                f"{output_model.__name__} failed schema validation:\n{issues}",
                raw_output=json.dumps(payload, default=str)[:500],
            ) from e

    @staticmethod
    def _parse_payload(response: Any) -> Any:
        text_parts: List[str] = []
        for block in response.content:
            if block.type == "tool_use":
                return block.input
            if block.type == "text":
                text_parts.append(block.text)

        text = "".join(text_parts)
        if not text.strip():
            raise StructuredOutputError("Model response contained neither a tool call nor text")
        try:
            return json.loads(extract_json(text))
        except json.JSONDecodeError as e:
            raise StructuredOutputError(
                f"Failed to parse model response as JSON: {e}", raw_output=text[:500]
            ) from e

    async def stream_chat(
        self,
        system: Union[str, Sequence[SystemBlock]],
        messages: Sequence[ChatMessage],
        *,
        max_tokens: int = CHAT_MAX_OUTPUT_TOKENS,
        tier: ModelTier = ModelTier.STANDARD,
    ) -> AsyncIterator[str]:
        """
        Stream a chat completion as text deltas.

        Args:
            system: Plain system prompt, or ordered blocks (cacheable ones flagged)
            messages: Conversation history, oldest first
            max_tokens: Output token cap
            tier: Model tier to run on

        Yields:
            Text fragments as the provider produces them
        """
        if isinstance(system, str):
            system_param: Union[str, List[Dict[str, Any]]] = system
        else:
            system_param = []
            for block in system:
                entry: Dict[str, Any] = {"type": "text", "text": block.text}
                if block.cache:
                    entry["cache_control"] = {"type": "ephemeral"}
                system_param.append(entry)

        async with self._client.messages.stream(
            model=self.model_for(tier),
            max_tokens=max_tokens,
            system=system_param,
            messages=[{"role": m.role, "content": m.content} for m in messages],
        ) as stream:
            async for text in stream.text_stream:
                yield text
