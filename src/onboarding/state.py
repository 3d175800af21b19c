"""
Onboarding State.

Steps of the wizard and the records it builds up along the way.
Everything here lives for exactly one onboarding session; nothing is
persisted except through the registry once the session is submitted.
"""

from dataclasses import dataclass, field, asdict
from enum import IntEnum
from typing import Any


class Step(IntEnum):
    """Wizard steps, in order."""
    SIGN_UP = 0
    VERIFY_CODE = 1
    COMPANY_INFO = 2
    GOALS = 3
    REVIEW = 4
    SUCCESS = 5


FIRST_STEP = Step.SIGN_UP
LAST_STEP = Step.SUCCESS

STEP_LABELS = {
    Step.SIGN_UP: "Sign Up",
    Step.VERIFY_CODE: "Verify",
    Step.COMPANY_INFO: "Company",
    Step.GOALS: "Goals",
    Step.REVIEW: "Review",
    Step.SUCCESS: "Done",
}

STEP_TITLES = {
    Step.SIGN_UP: "Create owner account",
    Step.VERIFY_CODE: "Verify your identity",
    Step.COMPANY_INFO: "Define company context",
    Step.GOALS: "Set strategic goals",
    Step.REVIEW: "Review and submit",
    Step.SUCCESS: "Registration complete",
}

STEP_SUBTITLES = {
    Step.SIGN_UP: "Use your business details to initialize your agent onboarding workspace.",
    Step.VERIFY_CODE: "Enter the one-time code sent to your business email address.",
    Step.COMPANY_INFO: "Provide a clear profile so the agent can represent your company accurately.",
    Step.GOALS: "Define short-term and long-term outcomes for better matching and strategy.",
    Step.REVIEW: "Validate all onboarding details before final submission.",
    Step.SUCCESS: "Your business agent is now active in the registry.",
}


def step_caption(step: Step) -> str:
    """'Step N of 6', or 'Complete' once registered."""
    if step == Step.SUCCESS:
        return "Complete"
    return f"Step {step + 1} of {len(Step)}"


def compute_progress(step: Step) -> int:
    """Integer percentage; fixed at 100 on the terminal step."""
    if step == Step.SUCCESS:
        return 100
    return round((step + 1) / len(Step) * 100)


# =============================================================================
# Records
# =============================================================================

@dataclass
class PersonProfile:
    """The account owner."""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    company_domain: str = ""
    verified: bool = False
    verification_method: str = "otp"
    role_title: str = ""
    user_id: str | None = None  # Assigned by the registry on submission

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class CompanyProfile:
    """What the agent will know about the company."""
    company_name: str = ""
    ein: str = ""  # Tax identifier, optional
    website: str = ""
    domains: list[str] = field(default_factory=list)
    policies: str = ""
    pricing_model: str = "Subscription"
    services: list[str] = field(default_factory=list)


@dataclass
class GoalsProfile:
    short_term: str = ""
    long_term: str = ""


@dataclass
class SessionStatus:
    """
    Busy flag plus the top-level (operational) error.

    Field validation errors are kept separately on the state.
    """
    busy: bool = False
    error: str | None = None


@dataclass
class SubmissionResult:
    agent_id: str
    user_id: str | None = None


@dataclass
class RegistryView:
    """Optional read-only registry snapshot shown after success."""
    visible: bool = False
    users: dict[str, Any] = field(default_factory=dict)
    agents: dict[str, Any] = field(default_factory=dict)


@dataclass
class WizardState:
    """
    Complete state of one onboarding session.

    Owned and mutated exclusively by WizardEngine.
    """
    step: Step = Step.SIGN_UP
    person: PersonProfile = field(default_factory=PersonProfile)
    company: CompanyProfile = field(default_factory=CompanyProfile)
    goals: GoalsProfile = field(default_factory=GoalsProfile)
    code: str = ""
    field_errors: dict[str, str] = field(default_factory=dict)
    status: SessionStatus = field(default_factory=SessionStatus)
    result: SubmissionResult | None = None
    registry: RegistryView = field(default_factory=RegistryView)

    @property
    def progress(self) -> int:
        return compute_progress(self.step)

    def clear_errors(self) -> None:
        self.status.error = None
        self.field_errors = {}

    def to_dict(self) -> dict:
        """Serialize to a JSON-friendly dict (a view, not a storage format)."""
        data = asdict(self)
        data["step"] = self.step.name.lower()
        data["step_index"] = int(self.step)
        data["progress"] = self.progress
        data["caption"] = step_caption(self.step)
        data["label"] = STEP_LABELS[self.step]
        data["title"] = STEP_TITLES[self.step]
        return data
