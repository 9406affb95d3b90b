from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from storefront import __version__
from storefront.config import Settings
from storefront.services import get_app_settings

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    status: str = Field(..., description="Service health status", examples=["healthy"])
    service: str = Field(..., description="Service name", examples=["storefront-api"])
    version: str = Field(..., description="Service version", examples=["1.0.0"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="""
    Health check endpoint for monitoring and load balancer health checks.

    Returns the service status, name, and version. Does not touch the database.
    """,
    responses={
        200: {
            "description": "Service is healthy",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "service": "storefront-api",
                        "version": "1.0.0"
                    }
                }
            }
        }
    }
)
async def health(settings: Settings = Depends(get_app_settings)):
    """Health check endpoint"""
    return HealthResponse(
        status="healthy",
        service=settings.app_name,
        version=__version__
    )
