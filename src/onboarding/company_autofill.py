"""
Company Autofill - LLM-backed directory lookup.

Given the owner's email domain, asks the LLM for a best-effort company
profile. Anything the model isn't confident about comes back empty and
is left for the user to fill in.
"""

import logging

from pydantic import BaseModel, Field

from registrar.llm.client import call_llm

from .services import CompanyLookup, DirectoryLookupError, DirectoryService

logger = logging.getLogger(__name__)


# =============================================================================
# Response Model
# =============================================================================

class CompanyProfileDraft(BaseModel):
    """LLM output for a company lookup."""
    company_name: str | None = Field(default=None, description="Legal or trading name")
    website: str | None = Field(default=None, description="Primary website URL, e.g. https://acme.com")
    domains: list[str] = Field(default_factory=list, description="Domains the company operates")
    policies: str | None = Field(
        default=None,
        description="Compliance/policy notes, e.g. 'SOC2 Type II, GDPR'",
    )
    pricing_model: str | None = Field(default=None, description="One of the allowed pricing models")
    services: str | None = Field(
        default=None,
        description="Core services as short sentences separated by periods",
    )


# =============================================================================
# Prompts
# =============================================================================

AUTOFILL_SYSTEM_PROMPT = """You are a company research assistant for a business agent registry.
Return only facts you are reasonably confident about. Leave a field empty rather than guess.
Never invent tax identifiers."""

AUTOFILL_PROMPT = """Build a short company profile for the business that owns the domain **{domain}**.

- company_name: the company's name
- website: its main website
- domains: domains it operates (include {domain})
- policies: notable compliance standards or policies, if known
- pricing_model: one of {pricing_models}, if it can be inferred
- services: its core services, each as a short sentence ending with a period"""


class LLMDirectoryService(DirectoryService):
    """DirectoryService backed by a structured LLM call."""

    def __init__(self, pricing_models: tuple[str, ...] | list[str] = ()):
        self.pricing_models = tuple(pricing_models)

    async def lookup(self, domain: str) -> CompanyLookup:
        prompt = AUTOFILL_PROMPT.format(
            domain=domain,
            pricing_models=", ".join(self.pricing_models) or "any",
        )
        try:
            draft = await call_llm(
                response_model=CompanyProfileDraft,
                system_prompt=AUTOFILL_SYSTEM_PROMPT,
                user_prompt=prompt,
                task="autofill",
                temperature=0.2,
            )
        except Exception as e:
            logger.error(f"Company lookup failed for {domain}: {e}")
            raise DirectoryLookupError(f"Could not look up {domain}") from e

        return CompanyLookup(
            company_name=draft.company_name,
            website=draft.website,
            domains=draft.domains or None,
            policies=draft.policies,
            pricing_model=draft.pricing_model,
            services=draft.services,
        )
