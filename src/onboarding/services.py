"""
Onboarding Collaborators.

The wizard talks to four external services. This module defines their
contracts only; concrete implementations live in verification.py,
registry.py, company_autofill.py and goal_generation.py, and tests
inject in-memory fakes.

Every collaborator failure is raised as a subclass of
OnboardingServiceError. The engine only uses the message.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from .state import CompanyProfile, GoalsProfile, PersonProfile


# =============================================================================
# Errors
# =============================================================================

class OnboardingServiceError(Exception):
    """A collaborator call failed. The message is shown to the user."""


class VerificationError(OnboardingServiceError):
    """Code could not be sent, or was rejected (expired, mismatched)."""


class DirectoryLookupError(OnboardingServiceError):
    """Company directory lookup failed."""


class GenerationError(OnboardingServiceError):
    """Goal generation failed."""


class SubmissionError(OnboardingServiceError):
    """Registry refused or failed to create the record."""


class RegistryReadError(OnboardingServiceError):
    """Registry snapshot could not be read."""


# =============================================================================
# Results
# =============================================================================

@dataclass
class CompanyLookup:
    """
    Best-effort company profile from the directory.

    Every field is optional; None means "not found" and leaves the
    wizard's value untouched. `services` may be a list or one
    period-delimited string.
    """
    company_name: str | None = None
    website: str | None = None
    domains: list[str] | None = None
    policies: str | None = None
    pricing_model: str | None = None
    services: list[str] | str | None = None
    ein: str | None = None


@dataclass
class SubmissionReceipt:
    agent_id: str
    user_id: str | None = None


@dataclass
class RegistrySnapshot:
    users: dict[str, Any] = field(default_factory=dict)
    agents: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Contracts
# =============================================================================

class VerificationService(ABC):
    """Issues and checks one-time codes for an email address."""

    @abstractmethod
    async def send_code(self, person: PersonProfile) -> PersonProfile:
        """Send a code to person.email; return the canonical person record."""

    @abstractmethod
    async def check_code(self, email: str, code: str) -> None:
        """Return normally if the code is valid, else raise VerificationError."""


class DirectoryService(ABC):
    """Looks up a company profile by domain."""

    @abstractmethod
    async def lookup(self, domain: str) -> CompanyLookup:
        ...


class GoalGenerationService(ABC):
    """Drafts short and long-term goals from a company profile."""

    @abstractmethod
    async def generate(self, company: CompanyProfile) -> GoalsProfile:
        ...


class RegistryService(ABC):
    """Stores finished onboarding submissions."""

    @abstractmethod
    async def create_record(
        self,
        person: PersonProfile,
        company: CompanyProfile,
        goals: GoalsProfile,
    ) -> SubmissionReceipt:
        ...

    @abstractmethod
    async def read_all(self) -> RegistrySnapshot:
        """Read-only snapshot of all users and agents (RegistryReadError on failure)."""
