"""Repository for resolving employee and agent records from auth user IDs."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from offline_policy.database.models import Agent, Employee
from offline_policy.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ActorRepository:
    """Lookups against the employees and agents tables."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def get_employee_id_by_user_id(self, user_id: str) -> Optional[UUID]:
        """Get the internal employee ID for an auth user.

        Args:
            user_id: External auth user ID

        Returns:
            employees.id or None if the user is not an employee
        """
        stmt = select(Employee.id).where(Employee.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_agent_id_by_user_id(self, user_id: str) -> Optional[UUID]:
        """Get the internal agent ID for an auth user.

        Args:
            user_id: External auth user ID

        Returns:
            agents.id or None if the user is not an agent
        """
        stmt = select(Agent.id).where(Agent.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
