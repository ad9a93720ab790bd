"""
LLM chat using Google Generative AI (Gemini).
Reads LLM_API_KEY (or GEMINI_API_KEY) from the environment once, when the
client handle is created at startup.
"""
import asyncio
import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash"


class LLMUnavailableError(RuntimeError):
    """No API key configured; callers degrade to placeholder text."""
    pass


class LlmClient:
    """Process-wide handle for text completion calls."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key
        self.model = model if model and "gemini" in model else DEFAULT_MODEL

    @classmethod
    def from_env(cls) -> "LlmClient":
        api_key = os.environ.get("LLM_API_KEY") or os.environ.get("GEMINI_API_KEY")
        if not api_key:
            logger.warning("LLM_API_KEY not set; AI assist will return placeholder text")
        return cls(api_key=api_key, model=os.environ.get("LLM_MODEL"))

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    def _sync_chat(self, system_prompt: str, user_text: str) -> str:
        """Synchronous chat completion using Google Generative AI."""
        import google.generativeai as genai
        if not self.api_key:
            raise LLMUnavailableError("LLM_API_KEY not found in environment")
        genai.configure(api_key=self.api_key)
        gemini = genai.GenerativeModel(
            self.model,
            system_instruction=system_prompt,
        )
        response = gemini.generate_content(user_text)
        if not response or not response.text:
            raise ValueError("Empty response from LLM")
        return response.text

    async def chat(self, system_prompt: str, user_text: str) -> str:
        """Async chat completion. Runs sync SDK in thread pool."""
        if not self.api_key:
            raise LLMUnavailableError("LLM_API_KEY not found in environment")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            lambda: self._sync_chat(system_prompt, user_text),
        )
