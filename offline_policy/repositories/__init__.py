"""Repository layer modules."""

from offline_policy.repositories.actor_repository import ActorRepository
from offline_policy.repositories.policy_repository import PolicyRepository

__all__ = [
    "ActorRepository",
    "PolicyRepository",
]
