"""Repository for the policies_new table.

Policies arriving without a policy number get one assigned here, in the
``POL-<year>-<suffix>`` format. Offline placeholders use a separate
``TEMP-`` prefix and are never written to this table.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from offline_policy.database.models import Policy
from offline_policy.repositories.base_repository import BaseRepository
from offline_policy.schemas.offline_policy import PolicySubmission
from offline_policy.utils.logging import get_logger

LOGGER = get_logger(__name__)

POLICY_NUMBER_PREFIX = "POL"


def generate_policy_number(now: Optional[datetime] = None) -> str:
    """Generate a server-side policy number, e.g. ``POL-2026-1A2B3C4D``."""
    now = now or datetime.now(timezone.utc)
    return f"{POLICY_NUMBER_PREFIX}-{now:%Y}-{uuid.uuid4().hex[:8].upper()}"


def _to_uuid(value: Optional[str]) -> Optional[uuid.UUID]:
    # Raises ValueError for malformed identifiers
    return uuid.UUID(value) if value else None


class PolicyRepository(BaseRepository[Policy]):
    """Repository for Policy rows."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Policy)

    async def create_policy(self, submission: PolicySubmission) -> Policy:
        """Insert a submitted policy, assigning a policy number when none is given.

        Args:
            submission: Row submitted by a client

        Returns:
            Policy: The created policy

        Raises:
            ValueError: If one of the ID fields is not a valid UUID
            SQLAlchemyError: If the insert is rejected by the database
        """
        policy_number = submission.policy_number or generate_policy_number()

        policy = await self.create(
            policy_number=policy_number,
            product_id=_to_uuid(submission.product_id),
            customer_name=submission.customer_name,
            premium_amount=Decimal(str(submission.premium_amount)),
            policy_status=submission.policy_status,
            line_of_business=submission.line_of_business or None,
            created_by_type=submission.created_by_type.value,
            employee_id=_to_uuid(submission.employee_id),
            agent_id=_to_uuid(submission.agent_id),
            insurer_id=_to_uuid(submission.insurer_id),
            policy_start_date=submission.policy_start_date,
            policy_end_date=submission.policy_end_date,
        )

        LOGGER.info(
            "Policy created",
            extra={
                "policy_id": str(policy.id),
                "policy_number": policy.policy_number,
                "created_by_type": policy.created_by_type,
            }
        )
        return policy
