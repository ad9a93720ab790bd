"""AI assist: placeholder fallbacks and grouping parsing."""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from services.ai_assist import (
    create_professional_summary,
    enhance_project_description,
    organize_experience,
    parse_grouping,
    rewrite_bio,
    summarize_portfolio,
)
from utils.llm_chat import LlmClient, LLMUnavailableError

LONG_BIO = "I am a backend engineer who loves distributed systems and writing clear documentation."


def _llm(return_value=None, side_effect=None):
    llm = MagicMock()
    llm.chat = AsyncMock(return_value=return_value, side_effect=side_effect)
    return llm


class TestRewriteBio:
    @pytest.mark.asyncio
    async def test_returns_model_text(self):
        llm = _llm(return_value="  Confident bio.  ")
        assert await rewrite_bio(llm, LONG_BIO) == "Confident bio."
        system_prompt, user_text = llm.chat.call_args.args
        assert "recruiter" in system_prompt
        assert LONG_BIO in user_text

    @pytest.mark.asyncio
    async def test_upstream_failure_returns_placeholder(self):
        llm = _llm(side_effect=RuntimeError("quota exceeded"))
        result = await rewrite_bio(llm, LONG_BIO)
        assert result == f"[MOCK BIO] {LONG_BIO[:50]}... (AI Error)"

    @pytest.mark.asyncio
    async def test_missing_key_returns_unavailable_placeholder(self):
        llm = _llm(side_effect=LLMUnavailableError("no key"))
        result = await rewrite_bio(llm, "short")
        assert result == "[MOCK BIO] short... (AI Unavailable)"

    @pytest.mark.asyncio
    async def test_real_client_without_key_never_raises(self):
        result = await rewrite_bio(LlmClient(api_key=None), LONG_BIO)
        assert result.startswith("[MOCK BIO] ")
        assert result.endswith("(AI Unavailable)")


class TestOtherTextActions:
    @pytest.mark.parametrize("action", [enhance_project_description, summarize_portfolio, create_professional_summary])
    @pytest.mark.asyncio
    async def test_failure_returns_placeholder(self, action):
        llm = _llm(side_effect=ValueError("Empty response from LLM"))
        result = await action(llm, "notes")
        assert "unavailable" in result.lower()

    @pytest.mark.asyncio
    async def test_structured_data_is_serialized(self):
        llm = _llm(return_value="Strong engineer.")
        await summarize_portfolio(llm, {"meta": {"name": "Ada"}})
        _, user_text = llm.chat.call_args.args
        assert '"name": "Ada"' in user_text


class TestOrganizeExperience:
    @pytest.mark.asyncio
    async def test_parses_fenced_json(self):
        text = '```json\n{"sections": [{"name": "Engineering", "intro": "Built things", "experienceIds": ["exp-1"]}]}\n```'
        result = await organize_experience(_llm(return_value=text), [{"id": "exp-1"}])
        assert result == {"sections": [{"name": "Engineering", "intro": "Built things", "experienceIds": ["exp-1"]}]}

    @pytest.mark.asyncio
    async def test_invalid_json_returns_none(self):
        assert await organize_experience(_llm(return_value="Sure! Here you go"), []) is None

    @pytest.mark.asyncio
    async def test_upstream_failure_returns_none(self):
        assert await organize_experience(_llm(side_effect=RuntimeError("boom")), []) is None

    def test_parse_grouping_defaults(self):
        grouping = parse_grouping('{"sections": [{"name": "Design"}]}')
        assert grouping.sections[0].experience_ids == []


@pytest.mark.asyncio
async def test_llm_client_runs_sdk_in_executor():
    client = LlmClient(api_key="test-key", model="gemini-1.5-pro")
    with patch.object(LlmClient, "_sync_chat", return_value="ok") as sync_chat:
        assert await client.chat("system", "hello") == "ok"
    sync_chat.assert_called_once_with("system", "hello")
    assert client.model == "gemini-1.5-pro"


def test_llm_client_from_env():
    with patch.dict("os.environ", {"GEMINI_API_KEY": "g-key", "LLM_MODEL": "gpt-4"}, clear=False):
        import os
        os.environ.pop("LLM_API_KEY", None)
        client = LlmClient.from_env()
    assert client.api_key == "g-key"
    assert client.available is True
    # Non-Gemini model names fall back to the default
    assert "gemini" in client.model
