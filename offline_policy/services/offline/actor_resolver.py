"""Resolves the acting user to the employee or agent record that owns new entries."""

from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from offline_policy.repositories.actor_repository import ActorRepository
from offline_policy.schemas.auth import CurrentUser
from offline_policy.schemas.offline_policy import Actor, ActorType, AgentActor, EmployeeActor
from offline_policy.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ActorResolver(ABC):
    """Maps the current user to a tagged actor."""

    @abstractmethod
    async def resolve(self, user: Optional[CurrentUser]) -> Actor:
        """Resolve the actor for ``user``.

        Never raises: an unresolved user yields an actor with an empty ID.
        """
        pass


class SqlAlchemyActorResolver(ActorResolver):
    """Looks the user up in ``employees`` or ``agents`` by ``user_id``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def resolve(self, user: Optional[CurrentUser]) -> Actor:
        if user is None:
            LOGGER.warning("No current user, attributing entry to an unresolved employee")
            return EmployeeActor()

        role = user.role.strip().lower()
        if role == ActorType.AGENT.value.lower():
            actor: Actor = AgentActor()
        elif role == ActorType.EMPLOYEE.value.lower():
            actor = EmployeeActor()
        else:
            LOGGER.warning(
                "Unknown role, attributing entry to an unresolved employee",
                extra={"user_id": user.id, "role": user.role}
            )
            return EmployeeActor()

        try:
            async with self.session_factory() as session:
                repository = ActorRepository(session)
                if isinstance(actor, AgentActor):
                    internal_id = await repository.get_agent_id_by_user_id(user.id)
                else:
                    internal_id = await repository.get_employee_id_by_user_id(user.id)
        except (SQLAlchemyError, OSError) as e:
            LOGGER.warning(
                "Actor lookup failed",
                extra={"user_id": user.id, "role": actor.type, "error": str(e)}
            )
            return actor

        if internal_id is None:
            LOGGER.warning(
                "Actor lookup returned no row",
                extra={"user_id": user.id, "role": actor.type}
            )
            return actor

        actor.id = str(internal_id)
        return actor
