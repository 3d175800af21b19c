"""
Agent registry backed by Supabase tables.

Two tables:
- users:  one row per verified owner (PersonProfile fields)
- agents: one row per business agent (owner_user_id, company_context, goals)

Both ids are generated by the database.
"""

import logging

from supabase import Client

from .payload import build_payload
from .services import (
    RegistryReadError,
    RegistryService,
    RegistrySnapshot,
    SubmissionError,
    SubmissionReceipt,
)
from .state import CompanyProfile, GoalsProfile, PersonProfile

logger = logging.getLogger(__name__)


class SupabaseRegistryService(RegistryService):
    """RegistryService writing to the users/agents tables."""

    def __init__(
        self,
        client: Client | None = None,
        users_table: str = "users",
        agents_table: str = "agents",
    ):
        self._client = client
        self.users_table = users_table
        self.agents_table = agents_table

    @property
    def client(self) -> Client:
        if self._client is None:
            from registrar.db.client import get_client

            self._client = get_client()
        return self._client

    async def create_record(
        self,
        person: PersonProfile,
        company: CompanyProfile,
        goals: GoalsProfile,
    ) -> SubmissionReceipt:
        if not person.verified:
            raise SubmissionError("Owner email has not been verified")

        payload = build_payload(person, company, goals)

        try:
            user_rows = self.client.table(self.users_table).insert(payload.user_record()).execute()
            user_id = str(user_rows.data[0]["id"])

            agent_rows = (
                self.client.table(self.agents_table)
                .insert(payload.agent_record(owner_user_id=user_id))
                .execute()
            )
            agent_id = str(agent_rows.data[0]["id"])
        except (IndexError, KeyError) as e:
            logger.error(f"Registry insert returned no id: {e}")
            raise SubmissionError("Registry did not return an id") from e
        except Exception as e:
            logger.error(f"Failed to create registry record: {e}")
            raise SubmissionError("Failed to create agent") from e

        logger.info(f"Created agent {agent_id} for user {user_id}")
        return SubmissionReceipt(agent_id=agent_id, user_id=user_id)

    async def read_all(self) -> RegistrySnapshot:
        try:
            users = self.client.table(self.users_table).select("*").execute()
            agents = self.client.table(self.agents_table).select("*").execute()
        except Exception as e:
            logger.error(f"Failed to read registry: {e}")
            raise RegistryReadError("Failed to load registry") from e

        return RegistrySnapshot(
            users={str(row["id"]): row for row in users.data or []},
            agents={str(row["id"]): row for row in agents.data or []},
        )
