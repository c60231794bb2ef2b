"""Language-model adapters used to interpret faucet requests."""

from __future__ import annotations

from typing import Any, Dict, List, Protocol

import google.generativeai as genai

from faucet_agent.utils.logging import get_logger

logger = get_logger(__name__)


class Interpreter(Protocol):
    """Anything that turns a user message into raw model text."""

    async def interpret(self, system_prompt: str, message: str) -> str:
        ...


class GeminiInterpreter:
    """Interpreter backed by Google's Gemini models."""

    def __init__(self, api_key: str, model_name: str) -> None:
        genai.configure(api_key=api_key)
        self.model_name = model_name
        self._models: Dict[str, genai.GenerativeModel] = {}

    def _model_for(self, system_prompt: str) -> genai.GenerativeModel:
        # The prompt only depends on the registry, so this holds one entry.
        model = self._models.get(system_prompt)
        if model is None:
            model = genai.GenerativeModel(
                model_name=self.model_name,
                system_instruction=system_prompt,
            )
            self._models[system_prompt] = model
        return model

    async def interpret(self, system_prompt: str, message: str) -> str:
        model = self._model_for(system_prompt)
        logger.debug("gemini_request", model=self.model_name, chars=len(message))
        response = await model.generate_content_async(
            [{"role": "user", "parts": [{"text": message}]}],
            generation_config={
                "response_mime_type": "application/json",
                "temperature": 0,
            },
        )
        text = self._extract_response_text(response)
        logger.debug("gemini_response", model=self.model_name, chars=len(text))
        return text

    @staticmethod
    def _extract_response_text(response: Any) -> str:
        if not response:
            return ""
        candidates = getattr(response, "candidates", None)
        if not candidates:
            return ""
        candidate = candidates[0]
        content = getattr(candidate, "content", None)
        parts = getattr(content, "parts", None)
        if not parts:
            return ""
        text_fragments: List[str] = []
        for part in parts:
            value = getattr(part, "text", None)
            if value:
                text_fragments.append(value)
        return "".join(text_fragments)


__all__ = ["GeminiInterpreter", "Interpreter"]
