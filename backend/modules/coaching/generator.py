"""
Language model access for coaching content.

Every stage asks the model for a JSON object. Replies are parsed with
LangChain's JsonOutputParser and validated against the stage's Pydantic
schema. Transport failures and unusable replies become LlmError, which
the API reports as 503 LLM_ERROR.
"""

import logging
from typing import Any, Optional, Type, TypeVar

from langchain_core.exceptions import OutputParserException
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_core.output_parsers import JsonOutputParser
from langchain_core.runnables import Runnable
from langchain_openai import ChatOpenAI
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from shared.config import Settings

from .exceptions import LlmError
from .prompts import PromptPair

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

TEMPERATURE = 0.8
MAX_TOKENS = 4096


class ContentGenerator:
    """Runs prompt pairs against a chat model in JSON mode."""

    def __init__(self, llm: Runnable) -> None:
        self._llm = llm

    @classmethod
    def from_settings(cls, settings: Settings) -> "ContentGenerator":
        chat: BaseChatModel = ChatOpenAI(
            model=settings.openai_module_model,
            api_key=settings.openai_api_key,
            temperature=TEMPERATURE,
            max_tokens=MAX_TOKENS,
        )
        return cls(chat.bind(response_format={"type": "json_object"}))

    async def complete(self, prompt: PromptPair) -> str:
        """
        Return the model's raw reply.

        Raises:
            LlmError: If the call fails or the reply is empty.
        """
        messages = [
            SystemMessage(content=prompt.system),
            HumanMessage(content=prompt.user),
        ]
        try:
            response = await self._llm.ainvoke(messages)
        except Exception as e:
            logger.error("Language model call failed: %s", e)
            raise LlmError(reason=type(e).__name__) from e

        content = response.content if isinstance(response.content, str) else ""
        content = content.strip()
        if not content:
            logger.error("Language model returned empty content")
            raise LlmError(reason="empty_response")
        return content

    async def complete_json(self, prompt: PromptPair, schema: Type[M]) -> M:
        """
        Return the reply validated against `schema`.

        Raises:
            LlmError: On call failure or a reply that does not fit the schema.
        """
        raw = await self.complete(prompt)
        parsed = parse_json_reply(raw, schema)
        if parsed is None:
            logger.error("Model reply did not match %s: %s", schema.__name__, raw[:300])
            raise LlmError(reason="invalid_response")
        return parsed

    async def complete_structured(
        self,
        prompt: PromptPair,
        schema: Type[M],
    ) -> tuple[str, Optional[M]]:
        """
        Return the raw reply and, when it fits `schema`, the parsed value.

        Used where plain text is an acceptable fallback.
        """
        raw = await self.complete(prompt)
        parsed = parse_json_reply(raw, schema)
        if parsed is None:
            logger.warning("Model reply is not a valid %s; using plain text", schema.__name__)
        return raw, parsed


def parse_json_reply(raw: str, schema: Type[M]) -> Optional[M]:
    """Parse a JSON reply into `schema`, or None if it does not fit."""
    parser = JsonOutputParser(pydantic_object=schema)
    try:
        data: Any = parser.parse(raw)
        return schema.model_validate(data)
    except (OutputParserException, PydanticValidationError):
        return None
