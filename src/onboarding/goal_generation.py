"""
Goal Generation - LLM drafts of short and long-term goals.
"""

import logging

from pydantic import BaseModel, Field

from registrar.llm.client import call_llm

from .services import GenerationError, GoalGenerationService
from .state import CompanyProfile, GoalsProfile

logger = logging.getLogger(__name__)


class GoalDraft(BaseModel):
    """LLM output for goal drafting."""
    short_term: str = Field(description="Goals for the next 3-6 months, 2-4 concrete bullet points")
    long_term: str = Field(description="Goals for the next 1-3 years, 2-4 concrete bullet points")


GOALS_SYSTEM_PROMPT = """You help business owners set up an AI business agent.
Write goals the agent can act on: specific, measurable, grounded in the company profile."""

GOALS_PROMPT = """**Company Profile:**
- Name: {company_name}
- Website: {website}
- Pricing model: {pricing_model}
- Services: {services}
- Policies: {policies}

Draft short-term (3-6 months) and long-term (1-3 years) business goals for this company."""


def format_company_for_prompt(company: CompanyProfile) -> str:
    return GOALS_PROMPT.format(
        company_name=company.company_name or "unknown",
        website=company.website or "unknown",
        pricing_model=company.pricing_model or "unknown",
        services="; ".join(company.services) or "not specified",
        policies=company.policies or "none stated",
    )


class LLMGoalGenerationService(GoalGenerationService):
    """GoalGenerationService backed by a structured LLM call."""

    async def generate(self, company: CompanyProfile) -> GoalsProfile:
        try:
            draft = await call_llm(
                response_model=GoalDraft,
                system_prompt=GOALS_SYSTEM_PROMPT,
                user_prompt=format_company_for_prompt(company),
                task="goals",
                temperature=0.6,
            )
        except Exception as e:
            logger.error(f"Goal generation failed for {company.company_name!r}: {e}")
            raise GenerationError("Could not draft goals") from e

        return GoalsProfile(short_term=draft.short_term, long_term=draft.long_term)
