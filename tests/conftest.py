"""
Pytest configuration and fixtures for Registrar tests.

Collaborators are in-memory fakes: no Supabase, no OpenAI.
"""

import asyncio
import os
from dataclasses import replace

import pytest

# Set test environment before importing registrar modules
os.environ["REGISTRAR_ENV"] = "development"
os.environ.setdefault("OPENAI_API_KEY", "test-key-not-real")

from onboarding.engine import WizardEngine
from onboarding.forms import WizardConfig
from onboarding.services import (
    CompanyLookup,
    DirectoryLookupError,
    DirectoryService,
    GenerationError,
    GoalGenerationService,
    RegistryReadError,
    RegistryService,
    RegistrySnapshot,
    SubmissionError,
    SubmissionReceipt,
    VerificationError,
    VerificationService,
)
from onboarding.state import GoalsProfile


VALID_CODE = "123456"


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------


class FakeVerificationService(VerificationService):
    """Accepts VALID_CODE; records every call."""

    def __init__(self):
        self.sent = []
        self.checked = []
        self.send_error: str | None = None

    async def send_code(self, person):
        self.sent.append(person)
        if self.send_error:
            raise VerificationError(self.send_error)
        return replace(person, email=person.email.strip().lower())

    async def check_code(self, email, code):
        self.checked.append((email, code))
        if code != VALID_CODE:
            raise VerificationError("Invalid or expired code")


class FakeDirectoryService(DirectoryService):
    def __init__(self, result: CompanyLookup | None = None):
        self.result = result or CompanyLookup()
        self.lookups = []
        self.fail = False

    async def lookup(self, domain):
        self.lookups.append(domain)
        if self.fail:
            raise DirectoryLookupError("directory unavailable")
        return self.result


class FakeGoalGenerationService(GoalGenerationService):
    def __init__(self):
        self.requests = []
        self.fail = False

    async def generate(self, company):
        self.requests.append(company)
        if self.fail:
            raise GenerationError("model timeout")
        return GoalsProfile(
            short_term=f"Launch {company.company_name} agent",
            long_term="Become the default partner in the region",
        )


class FakeRegistryService(RegistryService):
    def __init__(self):
        self.records = []
        self.submit_error: str | None = None
        self.read_fail = False

    async def create_record(self, person, company, goals):
        if self.submit_error:
            raise SubmissionError(self.submit_error)
        self.records.append((person, company, goals))
        n = len(self.records)
        return SubmissionReceipt(agent_id=f"agent-{n}", user_id=f"user-{n}")

    async def read_all(self):
        if self.read_fail:
            raise RegistryReadError("Failed to load registry")
        return RegistrySnapshot(
            users={f"user-{i + 1}": {"email": p.email} for i, (p, _, _) in enumerate(self.records)},
            agents={f"agent-{i + 1}": {"company": c.company_name} for i, (_, c, _) in enumerate(self.records)},
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio needed)."""
    return asyncio.run(coro)


def fill_sign_up(engine, email="ada@acme.io"):
    engine.update_person(first_name="Ada", last_name="Lovelace", email=email, role_title="CEO")


def fill_company(engine):
    engine.update_company(company_name="Acme", website="https://acme.io")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def verification():
    return FakeVerificationService()


@pytest.fixture
def directory():
    return FakeDirectoryService()


@pytest.fixture
def goal_generator():
    return FakeGoalGenerationService()


@pytest.fixture
def registry():
    return FakeRegistryService()


@pytest.fixture
def wizard_config():
    return WizardConfig()


@pytest.fixture
def engine(verification, directory, goal_generator, registry, wizard_config):
    return WizardEngine(
        verification=verification,
        directory=directory,
        goal_generator=goal_generator,
        registry=registry,
        config=wizard_config,
    )


@pytest.fixture
def engine_at():
    """Drive an engine forward to the requested step via the happy path."""
    from onboarding.state import Step

    def _drive(engine, target):
        if engine.step < target and engine.step == Step.SIGN_UP:
            fill_sign_up(engine)
            assert run(engine.advance()).ok
        if engine.step < target and engine.step == Step.VERIFY_CODE:
            engine.set_code(VALID_CODE)
            assert run(engine.advance()).ok
        if engine.step < target and engine.step == Step.COMPANY_INFO:
            fill_company(engine)
            assert run(engine.advance()).ok
        if engine.step < target and engine.step == Step.GOALS:
            assert run(engine.advance()).ok
        if engine.step < target and engine.step == Step.REVIEW:
            assert run(engine.submit()).ok
        assert engine.step == target
        return engine

    return _drive
