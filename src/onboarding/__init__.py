"""
Registrar Onboarding Wizard.

Guided intake that registers a business agent:

1. Sign Up      - owner name + business email, one-time code sent
2. Verify Code  - code checked, owner marked verified
3. Company Info - company profile (optionally autofilled from the email domain)
4. Goals        - short/long-term goals (optionally drafted by the LLM)
5. Review       - submit to the registry
6. Success      - agent id assigned
"""

from .engine import (
    InvalidTransitionError,
    StepOutcome,
    WizardBusyError,
    WizardEngine,
    WizardError,
)
from .forms import WizardConfig
from .payload import OnboardingPayload, build_payload
from .state import (
    CompanyProfile,
    GoalsProfile,
    PersonProfile,
    Step,
    WizardState,
)

__all__ = [
    "WizardEngine",
    "WizardConfig",
    "WizardState",
    "StepOutcome",
    "Step",
    "PersonProfile",
    "CompanyProfile",
    "GoalsProfile",
    "OnboardingPayload",
    "build_payload",
    "WizardError",
    "WizardBusyError",
    "InvalidTransitionError",
]
