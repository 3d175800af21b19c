"""
Onboarding Payload Definition.

The OnboardingPayload is the contract between the wizard and the registry:
the owner record plus the agent (company context and goals) it will run.
"""

from dataclasses import dataclass, field, asdict

from .state import CompanyProfile, GoalsProfile, PersonProfile


@dataclass
class AgentDefinition:
    """What the registry stores for the business agent."""
    company_context: CompanyProfile = field(default_factory=CompanyProfile)
    goals: GoalsProfile = field(default_factory=GoalsProfile)


@dataclass
class OnboardingPayload:
    """
    Complete output of the wizard.

    Shape: {"user": {...}, "agent": {"company_context": {...}, "goals": {...}}}
    """
    user: PersonProfile = field(default_factory=PersonProfile)
    agent: AgentDefinition = field(default_factory=AgentDefinition)

    def to_dict(self) -> dict:
        return asdict(self)

    def user_record(self) -> dict:
        """Owner row for the registry (registry assigns user_id)."""
        record = asdict(self.user)
        record.pop("user_id", None)
        return record

    def agent_record(self, owner_user_id: str | None = None) -> dict:
        """Agent row for the registry."""
        return {
            "owner_user_id": owner_user_id,
            "company_context": asdict(self.agent.company_context),
            "goals": asdict(self.agent.goals),
        }


def build_payload(
    person: PersonProfile,
    company: CompanyProfile,
    goals: GoalsProfile,
) -> OnboardingPayload:
    """
    Assemble the submission payload.

    Records are copied so the payload can't be changed by later edits.
    """
    return OnboardingPayload(
        user=PersonProfile(**asdict(person)),
        agent=AgentDefinition(
            company_context=CompanyProfile(**asdict(company)),
            goals=GoalsProfile(**asdict(goals)),
        ),
    )
