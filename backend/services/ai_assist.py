"""AI Assist Service - rewrites portfolio text with Gemini.

Text actions never raise: an upstream failure degrades to clearly marked
placeholder text so the editor request still succeeds. The structured
"organize experience" action returns None on failure instead.
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from utils.llm_chat import LlmClient, LLMUnavailableError

logger = logging.getLogger(__name__)

BIO_PREFIX_CHARS = 50


class ExperienceGroup(BaseModel):
    name: str
    intro: Optional[str] = None
    experience_ids: List[str] = Field(default_factory=list, alias="experienceIds")

    model_config = {"populate_by_name": True, "extra": "ignore"}


class ExperienceGrouping(BaseModel):
    sections: List[ExperienceGroup] = Field(default_factory=list)

    model_config = {"extra": "ignore"}


# ============================================================================
# Prompts
# ============================================================================

REWRITE_BIO_SYSTEM = "You are a professional technical recruiter and career coach."
REWRITE_BIO_TASK = (
    "Rewrite the following developer bio to be concise (max 120 words), "
    "confident, and impact-focused.\n\nINPUT BIO: \"{text}\""
)

ENHANCE_PROJECT_SYSTEM = "You are a senior software engineer."
ENHANCE_PROJECT_TASK = (
    "Turn these notes into a polished portfolio project description. "
    "Mention problem, solution, tech stack, and impact.\n\nNOTES: \"{text}\""
)

ORGANIZE_EXPERIENCE_SYSTEM = "You are a career organizer."
ORGANIZE_EXPERIENCE_TASK = (
    "Group these experiences into logical sections (e.g. Engineering, Design).\n"
    "FORMAT: Return ONLY valid JSON. No markdown. Structure: "
    "{{\"sections\": [{{\"name\": \"...\", \"intro\": \"...\", \"experienceIds\": [\"...\"]}}]}}\n\n"
    "EXPERIENCES: {text}"
)

SUMMARIZE_PORTFOLIO_SYSTEM = "You are a recruiter."
SUMMARIZE_PORTFOLIO_TASK = (
    "Create a short professional summary based on this portfolio data. "
    "Highlight strengths.\n\nDATA: {text}"
)

PROFESSIONAL_SUMMARY_SYSTEM = "You are a career consultant."
PROFESSIONAL_SUMMARY_TASK = (
    "Write a compelling 2-3 sentence professional summary for a developer "
    "portfolio hero section. Focus on tech stack and level.\n\nCONTEXT: \"{text}\""
)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


async def _complete(llm: LlmClient, system_prompt: str, task: str, text: str) -> str:
    response = await llm.chat(system_prompt, task.format(text=text))
    return response.strip()


async def rewrite_bio(llm: LlmClient, current_bio: str) -> str:
    current_bio = _as_text(current_bio)
    try:
        return await _complete(llm, REWRITE_BIO_SYSTEM, REWRITE_BIO_TASK, current_bio)
    except LLMUnavailableError:
        return f"[MOCK BIO] {current_bio[:BIO_PREFIX_CHARS]}... (AI Unavailable)"
    except Exception as e:
        logger.error(f"AI error generating bio: {e}")
        return f"[MOCK BIO] {current_bio[:BIO_PREFIX_CHARS]}... (AI Error)"


async def enhance_project_description(llm: LlmClient, notes: str) -> str:
    try:
        return await _complete(llm, ENHANCE_PROJECT_SYSTEM, ENHANCE_PROJECT_TASK, _as_text(notes))
    except LLMUnavailableError:
        return "Enhanced description unavailable (AI Config Missing)"
    except Exception as e:
        logger.error(f"AI error in enhance_project_description: {e}")
        return "Enhanced description unavailable (AI Error)"


async def summarize_portfolio(llm: LlmClient, portfolio: Any) -> str:
    try:
        return await _complete(llm, SUMMARIZE_PORTFOLIO_SYSTEM, SUMMARIZE_PORTFOLIO_TASK, _as_text(portfolio))
    except LLMUnavailableError:
        return "Summary unavailable"
    except Exception as e:
        logger.error(f"AI error in summarize_portfolio: {e}")
        return "Summary unavailable (AI Error)"


async def create_professional_summary(llm: LlmClient, existing: str) -> str:
    try:
        return await _complete(llm, PROFESSIONAL_SUMMARY_SYSTEM, PROFESSIONAL_SUMMARY_TASK, _as_text(existing))
    except LLMUnavailableError:
        return "Summary unavailable"
    except Exception as e:
        logger.error(f"AI error in create_professional_summary: {e}")
        return "Professional summary unavailable (AI Error)"


def parse_grouping(text: str) -> ExperienceGrouping:
    """Parse a model response into a grouping, tolerating ```json fences."""
    cleaned = re.sub(r"```(?:json)?", "", text).strip()
    return ExperienceGrouping.model_validate(json.loads(cleaned))


async def organize_experience(llm: LlmClient, experiences: Any) -> Optional[Dict[str, Any]]:
    """Ask the model to group experiences. Returns None on any failure."""
    try:
        text = await _complete(llm, ORGANIZE_EXPERIENCE_SYSTEM, ORGANIZE_EXPERIENCE_TASK, _as_text(experiences))
        grouping = parse_grouping(text)
        return grouping.model_dump(by_alias=True)
    except LLMUnavailableError:
        return None
    except (ValueError, ValidationError) as e:
        logger.error(f"AI returned an unusable grouping: {e}")
        return None
    except Exception as e:
        logger.error(f"AI error in organize_experience: {e}")
        return None
