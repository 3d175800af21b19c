"""
One-time-code verification backed by Supabase Auth.

send_code() asks Supabase to email a one-time code (creating the auth
user on first contact); check_code() verifies it.
"""

import logging
from dataclasses import replace

from supabase import Client

from .forms import email_domain
from .services import VerificationError, VerificationService
from .state import PersonProfile

logger = logging.getLogger(__name__)


class SupabaseVerificationService(VerificationService):
    """VerificationService using supabase.auth email OTP."""

    def __init__(self, client: Client | None = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            from registrar.db.client import get_client

            self._client = get_client()
        return self._client

    async def send_code(self, person: PersonProfile) -> PersonProfile:
        email = person.email.strip().lower()
        try:
            self.client.auth.sign_in_with_otp({
                "email": email,
                "options": {
                    "should_create_user": True,
                    "data": {
                        "first_name": person.first_name.strip(),
                        "last_name": person.last_name.strip(),
                        "role_title": person.role_title.strip(),
                    },
                },
            })
        except Exception as e:
            logger.error(f"Failed to send code to {email}: {e}")
            raise VerificationError(f"Could not send a code to {email}") from e

        return replace(
            person,
            first_name=person.first_name.strip(),
            last_name=person.last_name.strip(),
            email=email,
            company_domain=email_domain(email),
            verified=False,
            verification_method="otp",
        )

    async def check_code(self, email: str, code: str) -> None:
        try:
            response = self.client.auth.verify_otp({
                "email": email.strip().lower(),
                "token": code,
                "type": "email",
            })
        except Exception as e:
            logger.info(f"Code verification failed for {email}: {e}")
            raise VerificationError("Invalid or expired code") from e

        if not response or not response.user:
            raise VerificationError("Invalid or expired code")
