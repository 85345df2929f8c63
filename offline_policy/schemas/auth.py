"""Session context schemas.

The acting user is resolved upstream; this service only receives the
external user id and role it needs to attribute new policies.
"""

from typing import Optional

from pydantic import BaseModel, Field


class CurrentUser(BaseModel):
    """Current user information passed in by the calling client."""

    id: str = Field(..., description="External (auth provider) user ID")
    role: str = Field(default="Employee", description="User role, Employee or Agent")
    email: Optional[str] = Field(None, description="User email")
