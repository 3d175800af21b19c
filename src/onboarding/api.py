"""
Onboarding API Endpoints.

Thin HTTP layer over WizardEngine. Each browser session gets its own
engine, kept in memory; nothing is persisted until the wizard submits to
the registry. Sessions expire after SESSION_TTL without activity, and at
most MAX_SESSIONS are kept (the least recently used is evicted first).
"""

import inspect
import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict

from .engine import (
    InvalidTransitionError,
    StepOutcome,
    WizardBusyError,
    WizardEngine,
)
from .forms import WizardConfig, get_form_options

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])

SESSION_TTL = timedelta(hours=2)
MAX_SESSIONS = 1000

# Simple in-memory session store, least recently used first
sessions: dict[str, dict[str, Any]] = {}


# =============================================================================
# Engine Factory
# =============================================================================


def build_default_engine() -> WizardEngine:
    """Engine wired to Supabase (verification, registry) and the LLM (enrichment)."""
    from registrar.config import settings

    from .company_autofill import LLMDirectoryService
    from .goal_generation import LLMGoalGenerationService
    from .registry import SupabaseRegistryService
    from .verification import SupabaseVerificationService

    config = WizardConfig.from_settings(settings)
    return WizardEngine(
        verification=SupabaseVerificationService(),
        directory=LLMDirectoryService(pricing_models=config.pricing_models),
        goal_generator=LLMGoalGenerationService(),
        registry=SupabaseRegistryService(
            users_table=settings.users_table,
            agents_table=settings.agents_table,
        ),
        config=config,
    )


def get_engine_factory() -> Callable[[], WizardEngine]:
    """Dependency: how new sessions get their engine (overridden in tests)."""
    return build_default_engine


# =============================================================================
# Request/Response Models
# =============================================================================


class PersonUpdate(BaseModel):
    """Sign-up form fields."""
    model_config = ConfigDict(extra="forbid")

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    role_title: str | None = None


class CompanyUpdate(BaseModel):
    """Company form fields. services_text is split into services."""
    model_config = ConfigDict(extra="forbid")

    company_name: str | None = None
    ein: str | None = None
    website: str | None = None
    domains: list[str] | None = None
    policies: str | None = None
    pricing_model: str | None = None
    services: list[str] | None = None
    services_text: str | None = None


class GoalsUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    short_term: str | None = None
    long_term: str | None = None


class CodeUpdate(BaseModel):
    code: str


class SessionResponse(BaseModel):
    """Session snapshot plus the outcome of the last operation."""
    session_id: str
    ok: bool = True
    error: str | None = None
    field_errors: dict[str, str] = {}
    state: dict[str, Any]


# =============================================================================
# Helpers
# =============================================================================


def _prune_sessions(now: datetime) -> None:
    """Drop expired sessions, then the oldest ones while the store is full."""
    expired = [sid for sid, session in sessions.items() if session["expires_at"] <= now]
    for sid in expired:
        del sessions[sid]
    while len(sessions) >= MAX_SESSIONS:
        oldest = next(iter(sessions))
        logger.info(f"Evicting onboarding session {oldest} (store full)")
        del sessions[oldest]
    if expired:
        logger.info(f"Expired {len(expired)} onboarding session(s)")


def get_session(session_id: str) -> WizardEngine:
    """Look up a live session and extend its lifetime."""
    now = datetime.now()
    session = sessions.pop(session_id, None)
    if session is None or session["expires_at"] <= now:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    session["expires_at"] = now + SESSION_TTL
    sessions[session_id] = session
    return session["engine"]


def _respond(session_id: str, engine: WizardEngine, outcome: StepOutcome | None = None) -> SessionResponse:
    if outcome is None:
        return SessionResponse(
            session_id=session_id,
            ok=True,
            error=engine.error,
            field_errors=dict(engine.field_errors),
            state=engine.snapshot(),
        )
    return SessionResponse(
        session_id=session_id,
        ok=outcome.ok,
        error=outcome.error,
        field_errors=outcome.field_errors,
        state=engine.snapshot(),
    )


async def _run_operation(session_id: str, operation) -> SessionResponse:
    """Run an engine operation, mapping engine misuse to HTTP errors."""
    engine = get_session(session_id)
    try:
        outcome = operation(engine)
        if inspect.isawaitable(outcome):
            outcome = await outcome
    except WizardBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _respond(session_id, engine, outcome)


# =============================================================================
# Endpoints: Sessions
# =============================================================================


@router.get("/options")
async def get_options():
    """Form options (pricing models, code length, blocked email domains)."""
    from registrar.config import settings

    return get_form_options(WizardConfig.from_settings(settings))


@router.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_session(factory: Callable[[], WizardEngine] = Depends(get_engine_factory)) -> SessionResponse:
    """Start a new onboarding session."""
    now = datetime.now()
    _prune_sessions(now)

    session_id = str(uuid.uuid4())
    engine = factory()
    sessions[session_id] = {"engine": engine, "expires_at": now + SESSION_TTL}
    logger.info(f"Started onboarding session {session_id}")
    return _respond(session_id, engine)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session_state(session_id: str) -> SessionResponse:
    return _respond(session_id, get_session(session_id))


@router.delete("/sessions/{session_id}", status_code=204)
async def end_session(session_id: str) -> None:
    get_session(session_id)
    sessions.pop(session_id, None)


@router.post("/sessions/{session_id}/reset", response_model=SessionResponse)
async def reset_session(session_id: str) -> SessionResponse:
    """Register another agent: start over from sign-up."""
    return await _run_operation(session_id, lambda engine: engine.reset())


# =============================================================================
# Endpoints: Field Updates
# =============================================================================


@router.patch("/sessions/{session_id}/person", response_model=SessionResponse)
async def update_person(session_id: str, request: PersonUpdate) -> SessionResponse:
    """Sign-up fields; only editable on the sign-up step."""
    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    return await _run_operation(session_id, lambda engine: engine.update_person(**changes))


@router.patch("/sessions/{session_id}/company", response_model=SessionResponse)
async def update_company(session_id: str, request: CompanyUpdate) -> SessionResponse:
    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    services_text = changes.pop("services_text", None)

    def apply(engine: WizardEngine) -> None:
        engine.update_company(**changes)
        if services_text is not None:
            engine.set_services_text(services_text)

    return await _run_operation(session_id, apply)


@router.patch("/sessions/{session_id}/goals", response_model=SessionResponse)
async def update_goals(session_id: str, request: GoalsUpdate) -> SessionResponse:
    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    return await _run_operation(session_id, lambda engine: engine.update_goals(**changes))


@router.put("/sessions/{session_id}/code", response_model=SessionResponse)
async def set_code(session_id: str, request: CodeUpdate) -> SessionResponse:
    return await _run_operation(session_id, lambda engine: engine.set_code(request.code))


# =============================================================================
# Endpoints: Transitions
# =============================================================================


@router.post("/sessions/{session_id}/advance", response_model=SessionResponse)
async def advance(session_id: str) -> SessionResponse:
    """Validate the current step and move forward."""
    return await _run_operation(session_id, lambda engine: engine.advance())


@router.post("/sessions/{session_id}/back", response_model=SessionResponse)
async def back(session_id: str) -> SessionResponse:
    return await _run_operation(session_id, lambda engine: engine.retreat())


@router.post("/sessions/{session_id}/autofill", response_model=SessionResponse)
async def autofill(session_id: str) -> SessionResponse:
    """Fill company details from the email domain."""
    return await _run_operation(session_id, lambda engine: engine.autofill_company())


@router.post("/sessions/{session_id}/goals/generate", response_model=SessionResponse)
async def generate_goals(session_id: str) -> SessionResponse:
    return await _run_operation(session_id, lambda engine: engine.generate_goals())


@router.post("/sessions/{session_id}/submit", response_model=SessionResponse)
async def submit(session_id: str) -> SessionResponse:
    """Create the agent in the registry."""
    return await _run_operation(session_id, lambda engine: engine.submit())


@router.post("/sessions/{session_id}/registry/toggle", response_model=SessionResponse)
async def toggle_registry(session_id: str) -> SessionResponse:
    return await _run_operation(session_id, lambda engine: engine.toggle_registry())
