"""
Onboarding Wizard Engine.

Owns the session state and all control flow of the intake wizard:

    SIGN_UP -> VERIFY_CODE -> COMPANY_INFO -> GOALS -> REVIEW -> SUCCESS

Forward moves go through advance() (or submit() from REVIEW), each one
validating its step first. retreat() steps back without touching data.
autofill_company() and generate_goals() enrich the records in place.

At most one collaborator call is in flight at a time. The busy flag is
checked and set with no await in between, so on a single event loop a
second call can never be issued while the first is pending. Results are
applied to the state in one synchronous block after the await returns.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, fields, replace

from .forms import (
    WizardConfig,
    email_domain,
    normalize_domains,
    normalize_services,
    validate_code,
    validate_company,
    validate_sign_up,
)
from .payload import build_payload
from .services import (
    CompanyLookup,
    DirectoryService,
    GoalGenerationService,
    OnboardingServiceError,
    RegistryService,
    VerificationService,
)
from .state import (
    FIRST_STEP,
    LAST_STEP,
    GoalsProfile,
    Step,
    SubmissionResult,
    WizardState,
)

logger = logging.getLogger(__name__)

AUTOFILL_NEEDS_EMAIL = "Enter a valid business email before using autofill."
AUTOFILL_FAILED = "Autofill failed. You can continue by filling company details manually."
GENERATION_FAILED = "Goal generation failed. You can still enter goals manually."

# Only the verification flow may set these
READ_ONLY_PERSON_FIELDS = {"verified", "user_id"}


class WizardError(Exception):
    """The engine was asked to do something it can't do right now."""


class InvalidTransitionError(WizardError):
    """Operation not available on the current step."""


class WizardBusyError(WizardError):
    """Another collaborator call is still outstanding."""


@dataclass
class StepOutcome:
    """Result of one wizard operation."""
    ok: bool
    step: Step
    field_errors: dict[str, str] = field(default_factory=dict)
    error: str | None = None


class WizardEngine:
    """
    State machine for one onboarding session.

    Collaborators are injected so the engine never knows how codes are
    sent, companies looked up, goals drafted or records stored.
    """

    def __init__(
        self,
        *,
        verification: VerificationService,
        directory: DirectoryService,
        goal_generator: GoalGenerationService,
        registry: RegistryService,
        config: WizardConfig | None = None,
    ):
        self.verification = verification
        self.directory = directory
        self.goal_generator = goal_generator
        self.registry = registry
        self.config = config or WizardConfig()
        self.state = self._new_state()

    def _new_state(self) -> WizardState:
        state = WizardState()
        state.company.pricing_model = self.config.default_pricing_model
        return state

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def step(self) -> Step:
        return self.state.step

    @property
    def person(self):
        return self.state.person

    @property
    def company(self):
        return self.state.company

    @property
    def goals(self):
        return self.state.goals

    @property
    def busy(self) -> bool:
        return self.state.status.busy

    @property
    def error(self) -> str | None:
        return self.state.status.error

    @property
    def field_errors(self) -> dict[str, str]:
        return self.state.field_errors

    @property
    def result(self) -> SubmissionResult | None:
        return self.state.result

    @property
    def progress(self) -> int:
        return self.state.progress

    def snapshot(self) -> dict:
        return self.state.to_dict()

    # -------------------------------------------------------------------------
    # Field mutators (no validation, errors untouched, rejected while busy)
    # -------------------------------------------------------------------------

    def update_person(self, **changes) -> None:
        """
        Edit the owner record. Only allowed on SIGN_UP, before a code is
        sent; a new email drops any earlier verification.
        """
        self._ensure_idle()
        blocked = READ_ONLY_PERSON_FIELDS & changes.keys()
        if blocked:
            raise AttributeError(f"Read-only person fields: {sorted(blocked)}")
        self._require_step(Step.SIGN_UP, "edit owner details")

        person = self.state.person
        email_changed = "email" in changes and changes["email"] != person.email
        _assign(person, changes)
        if email_changed:
            person.verified = False
            person.company_domain = ""

    def update_company(self, **changes) -> None:
        self._ensure_idle()
        pricing_model = changes.get("pricing_model")
        if pricing_model is not None and pricing_model not in self.config.pricing_models:
            raise ValueError(
                f"Unknown pricing model: {pricing_model} "
                f"(expected one of {', '.join(self.config.pricing_models)})"
            )
        _assign(self.state.company, changes)

    def update_goals(self, **changes) -> None:
        self._ensure_idle()
        _assign(self.state.goals, changes)

    def set_code(self, code: str) -> None:
        self._ensure_idle()
        self.state.code = code

    def set_services_text(self, text: str) -> None:
        """Set services from free text, one service per sentence."""
        self._ensure_idle()
        self.state.company.services = normalize_services(text)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    async def advance(self) -> StepOutcome:
        """Validate the current step and move to the next one."""
        self._ensure_idle()
        step = self.state.step
        if step in (Step.REVIEW, Step.SUCCESS):
            raise InvalidTransitionError(f"Cannot advance from {step.name}")

        self.state.clear_errors()

        if step == Step.SIGN_UP:
            return await self._advance_sign_up()
        if step == Step.VERIFY_CODE:
            return await self._advance_verify_code()
        if step == Step.COMPANY_INFO:
            errors = validate_company(self.state.company)
            if errors:
                return self._reject(errors)
            return self._move_to(Step.GOALS)
        return self._move_to(Step.REVIEW)

    async def _advance_sign_up(self) -> StepOutcome:
        person = self.state.person
        errors = validate_sign_up(person, self.config)
        if errors:
            return self._reject(errors)

        request = replace(person, company_domain=email_domain(person.email).lower())
        async with self._busy():
            try:
                canonical = await self.verification.send_code(request)
            except OnboardingServiceError as e:
                logger.warning(f"Sending code to {person.email} failed: {e}")
                return self._fail(str(e))
            self.state.person = canonical
            return self._move_to(Step.VERIFY_CODE)

    async def _advance_verify_code(self) -> StepOutcome:
        errors = validate_code(self.state.code, self.config)
        if errors:
            return self._reject(errors)

        email = self.state.person.email
        async with self._busy():
            try:
                await self.verification.check_code(email, self.state.code.strip())
            except OnboardingServiceError as e:
                logger.info(f"Code rejected for {email}: {e}")
                return self._fail(str(e))
            self.state.person.verified = True
            return self._move_to(Step.COMPANY_INFO)

    def retreat(self) -> StepOutcome:
        """
        Go back one step. Data is kept; errors are cleared.

        No-op on the first and last steps.
        """
        self._ensure_idle()
        step = self.state.step
        if not FIRST_STEP < step < LAST_STEP:
            return StepOutcome(
                ok=False,
                step=step,
                field_errors=dict(self.state.field_errors),
                error=self.state.status.error,
            )
        self.state.clear_errors()
        return self._move_to(Step(step - 1))

    async def submit(self) -> StepOutcome:
        """Send the assembled profile to the registry (REVIEW only)."""
        self._ensure_idle()
        self._require_step(Step.REVIEW, "submit")
        self.state.clear_errors()

        payload = build_payload(self.state.person, self.state.company, self.state.goals)
        logger.debug(f"Submitting onboarding payload: {payload.to_dict()}")
        async with self._busy():
            try:
                receipt = await self.registry.create_record(
                    payload.user,
                    payload.agent.company_context,
                    payload.agent.goals,
                )
            except OnboardingServiceError as e:
                logger.error(f"Submission failed: {e}")
                return self._fail(str(e))

            if not receipt.agent_id:
                logger.error("Registry accepted the record but returned no agent id")
                return self._fail("Registry did not return an agent id")

            self.state.result = SubmissionResult(
                agent_id=receipt.agent_id,
                user_id=receipt.user_id,
            )
            if receipt.user_id:
                self.state.person.user_id = receipt.user_id
            self.state.step = Step.SUCCESS
            logger.info(f"Registered agent {receipt.agent_id}")

            # Best effort: a stale registry view doesn't undo the submission
            try:
                await self._load_registry()
            except OnboardingServiceError as e:
                logger.warning(f"Registry refresh after submit failed: {e}")

        return self._ok()

    # -------------------------------------------------------------------------
    # Enrichment
    # -------------------------------------------------------------------------

    async def autofill_company(self) -> StepOutcome:
        """Fill company details from the directory, keyed by the email domain."""
        self._ensure_idle()
        self._require_step(Step.COMPANY_INFO, "autofill")
        self.state.clear_errors()

        domain = email_domain(self.state.person.email)
        if not domain:
            return self._fail(AUTOFILL_NEEDS_EMAIL)

        async with self._busy():
            try:
                found = await self.directory.lookup(domain)
            except OnboardingServiceError as e:
                logger.warning(f"Autofill for {domain} failed: {e}")
                return self._fail(AUTOFILL_FAILED)
            self.state.company = self._merge_company(found, domain)
        return self._ok()

    def _merge_company(self, found: CompanyLookup, domain: str):
        updates = {
            name: value
            for name, value in (
                ("company_name", found.company_name),
                ("website", found.website),
                ("policies", found.policies),
            )
            if value is not None
        }
        if found.pricing_model in self.config.pricing_models:
            updates["pricing_model"] = found.pricing_model
        elif found.pricing_model:
            logger.info(f"Ignoring unknown pricing model from directory: {found.pricing_model}")
        if found.services is not None:
            updates["services"] = normalize_services(found.services)

        updates["domains"] = normalize_domains(found.domains) or [domain.lower()]
        # Autofill never supplies a tax identifier
        updates["ein"] = ""
        return replace(self.state.company, **updates)

    async def generate_goals(self) -> StepOutcome:
        """Draft goals from the company profile, replacing current goal text."""
        self._ensure_idle()
        self._require_step(Step.GOALS, "generate goals")
        self.state.clear_errors()

        async with self._busy():
            try:
                generated = await self.goal_generator.generate(replace(self.state.company))
            except OnboardingServiceError as e:
                logger.warning(f"Goal generation failed: {e}")
                return self._fail(GENERATION_FAILED)
            self.state.goals = GoalsProfile(
                short_term=generated.short_term,
                long_term=generated.long_term,
            )
        return self._ok()

    # -------------------------------------------------------------------------
    # Registry view
    # -------------------------------------------------------------------------

    async def toggle_registry(self) -> StepOutcome:
        """Show/hide the registry view; showing it after success reloads it."""
        self._ensure_idle()
        view = self.state.registry
        view.visible = not view.visible
        if view.visible and self.state.step == Step.SUCCESS:
            return await self.refresh_registry()
        return self._ok()

    async def refresh_registry(self) -> StepOutcome:
        self._ensure_idle()
        self._require_step(Step.SUCCESS, "refresh the registry")
        self.state.clear_errors()

        async with self._busy():
            try:
                await self._load_registry()
            except OnboardingServiceError as e:
                logger.warning(f"Registry read failed: {e}")
                return self._fail(str(e))
        return self._ok()

    async def _load_registry(self) -> None:
        snapshot = await self.registry.read_all()
        self.state.registry = replace(
            self.state.registry,
            users=dict(snapshot.users),
            agents=dict(snapshot.agents),
        )

    def reset(self) -> None:
        """Discard the session and start over from SIGN_UP."""
        self._ensure_idle()
        self.state = self._new_state()

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _ensure_idle(self) -> None:
        if self.state.status.busy:
            raise WizardBusyError("Another operation is still in progress")

    def _require_step(self, step: Step, action: str) -> None:
        if self.state.step != step:
            raise InvalidTransitionError(
                f"Cannot {action} on {self.state.step.name} (only on {step.name})"
            )

    @asynccontextmanager
    async def _busy(self):
        self._ensure_idle()
        self.state.status.busy = True
        try:
            yield
        finally:
            self.state.status.busy = False

    def _move_to(self, step: Step) -> StepOutcome:
        logger.info(f"Wizard {self.state.step.name} -> {step.name}")
        self.state.step = step
        return self._ok()

    def _ok(self) -> StepOutcome:
        return StepOutcome(ok=True, step=self.state.step)

    def _reject(self, errors: dict[str, str]) -> StepOutcome:
        self.state.field_errors = dict(errors)
        return StepOutcome(ok=False, step=self.state.step, field_errors=dict(errors))

    def _fail(self, message: str) -> StepOutcome:
        self.state.status.error = message
        return StepOutcome(ok=False, step=self.state.step, error=message)


def _assign(record, changes: dict) -> None:
    """Write fields onto a dataclass record, refusing unknown names."""
    known = {f.name for f in fields(record)}
    unknown = changes.keys() - known
    if unknown:
        raise AttributeError(f"Unknown fields for {type(record).__name__}: {sorted(unknown)}")
    for name, value in changes.items():
        setattr(record, name, value)
