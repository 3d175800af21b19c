"""
Onboarding Forms - per-step validation rules.

Validation here is pure: each validator takes a record and returns a
mapping of field name -> message. An empty mapping means the step may
advance. The engine decides what to do with the result.

The free-email denylist and the pricing models are configuration, not
constants: they are carried by WizardConfig so the engine can be driven
by any set of lookup tables.
"""

import re
from dataclasses import dataclass
from typing import Iterable

from .state import CompanyProfile, PersonProfile


# =============================================================================
# Lookup Tables
# =============================================================================

DEFAULT_FREE_EMAIL_DOMAINS = frozenset({
    "gmail.com",
    "yahoo.com",
    "hotmail.com",
    "outlook.com",
    "aol.com",
    "icloud.com",
    "proton.me",
    "protonmail.com",
    "mail.com",
    "gmx.com",
})

DEFAULT_PRICING_MODELS = ("Subscription", "Usage-Based", "Flat Fee")

DEFAULT_CODE_LENGTH = 6

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass(frozen=True)
class WizardConfig:
    """Injectable lookup tables for the wizard."""
    free_email_domains: frozenset[str] = DEFAULT_FREE_EMAIL_DOMAINS
    pricing_models: tuple[str, ...] = DEFAULT_PRICING_MODELS
    code_length: int = DEFAULT_CODE_LENGTH

    def __post_init__(self):
        # Normalize so lookups are case-insensitive
        object.__setattr__(
            self,
            "free_email_domains",
            frozenset(d.lower().strip() for d in self.free_email_domains),
        )
        object.__setattr__(self, "pricing_models", tuple(self.pricing_models))

    @property
    def default_pricing_model(self) -> str:
        return self.pricing_models[0] if self.pricing_models else ""

    @classmethod
    def from_settings(cls, settings) -> "WizardConfig":
        """Build from registrar.config.Settings (or anything with the same fields)."""
        return cls(
            free_email_domains=frozenset(settings.free_email_domains),
            pricing_models=tuple(settings.pricing_models),
            code_length=settings.verification_code_length,
        )


# =============================================================================
# Helpers
# =============================================================================

def email_domain(email: str) -> str:
    """
    Domain part of an email ("" if there is none).

    Mirrors a plain split on "@": "a@b.com" -> "b.com", "nobody" -> "".
    """
    parts = email.split("@")
    if len(parts) < 2:
        return ""
    return parts[1].strip()


def _dedupe(items: Iterable[str]) -> list[str]:
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def normalize_services(value: str | Iterable[str] | None) -> list[str]:
    """
    Turn services into a list of individual entries.

    A string is treated as period-delimited ("Consulting. Advisory.");
    fragments are trimmed and empty ones dropped.
    """
    if value is None:
        return []
    if isinstance(value, str):
        fragments = value.split(".")
    else:
        fragments = list(value)
    return _dedupe(s.strip() for s in fragments if s and s.strip())


def normalize_domains(value: Iterable[str] | None) -> list[str]:
    if not value:
        return []
    return _dedupe(d.strip().lower() for d in value if d and d.strip())


# =============================================================================
# Validators
# =============================================================================

def validate_email(email: str, config: WizardConfig) -> str | None:
    """Return an error message for an unusable email, else None."""
    if not EMAIL_PATTERN.match(email):
        return "Invalid email format"
    domain = email_domain(email).lower()
    if not domain:
        return "Business email is required"
    if domain in config.free_email_domains:
        return "Please use a business email"
    return None


def validate_sign_up(person: PersonProfile, config: WizardConfig) -> dict[str, str]:
    errors = {}
    if not person.first_name.strip():
        errors["first_name"] = "First name is required"
    if not person.last_name.strip():
        errors["last_name"] = "Last name is required"
    email_error = validate_email(person.email, config)
    if email_error:
        errors["email"] = email_error
    return errors


def validate_code(code: str, config: WizardConfig) -> dict[str, str]:
    if len(code.strip()) != config.code_length:
        return {"code": f"Code must be {config.code_length} characters"}
    return {}


def validate_company(company: CompanyProfile) -> dict[str, str]:
    errors = {}
    if not company.company_name.strip():
        errors["company_name"] = "Company name is required"
    if not company.website.strip():
        errors["website"] = "Website is required"
    return errors


# =============================================================================
# API Response Helpers
# =============================================================================

def get_form_options(config: WizardConfig) -> dict:
    """Options the frontend needs to render the forms."""
    return {
        "pricing_models": list(config.pricing_models),
        "default_pricing_model": config.default_pricing_model,
        "code_length": config.code_length,
        "free_email_domains": sorted(config.free_email_domains),
    }
