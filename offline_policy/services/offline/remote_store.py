"""Remote policy store that accepts finalized offline entries."""

from abc import ABC, abstractmethod

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from offline_policy.core.exceptions import SubmissionError
from offline_policy.repositories.policy_repository import PolicyRepository
from offline_policy.schemas.offline_policy import PolicySubmission, RemotePolicyRecord
from offline_policy.utils.logging import get_logger

LOGGER = get_logger(__name__)


class RemotePolicyStore(ABC):
    """Destination for policy rows submitted from the offline queue."""

    @abstractmethod
    async def insert_policy(self, submission: PolicySubmission) -> RemotePolicyRecord:
        """Insert one policy row.

        Args:
            submission: Row to insert; ``policy_number`` None asks the store to assign one

        Returns:
            RemotePolicyRecord: Server-assigned ID and policy number

        Raises:
            SubmissionError: If the store rejects the row
        """
        pass


class SqlAlchemyPolicyStore(RemotePolicyStore):
    """Writes submissions to ``policies_new`` in their own session and transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """Initialize store.

        Args:
            session_factory: Factory producing async sessions
        """
        self.session_factory = session_factory

    async def insert_policy(self, submission: PolicySubmission) -> RemotePolicyRecord:
        try:
            async with self.session_factory() as session:
                repository = PolicyRepository(session)
                policy = await repository.create_policy(submission)
                return RemotePolicyRecord(id=str(policy.id), policy_number=policy.policy_number)
        except (SQLAlchemyError, ValueError, OSError) as e:
            LOGGER.warning(
                "Policy insert rejected",
                extra={"policy_number": submission.policy_number, "error": str(e)}
            )
            raise SubmissionError(f"Policy insert rejected: {e}", original_error=e)
