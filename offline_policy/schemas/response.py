from pydantic import BaseModel, Field


class HealthCheckResponse(BaseModel):
    """Health check response model.

    Attributes:
        status: Service status
        version: Application version
        service: Service name
        online: Whether the remote policy store is currently reachable
    """

    status: str = Field(
        default="healthy",
        description="Service health status",
        examples=["healthy", "degraded"],
    )
    version: str = Field(
        ...,
        description="Application version",
        examples=["0.1.0"],
    )
    service: str = Field(
        ...,
        description="Service name",
        examples=["Insura CRM - Offline Policy Sync"],
    )
    online: bool = Field(
        ...,
        description="Remote policy store reachability",
    )
