"""
API v1 router setup
Organized into: public, customer (JWT), dashboard (JWT + vendor staff) and worker routes
"""
from fastapi import APIRouter

from app.api.v1 import appointments
from app.api.v1.dashboard import appointments as dashboard_appointments, vendors
from app.api.v1.public import slots
from app.api.v1.worker import schedule

api_v1_router = APIRouter()

# ============================================================================
# PUBLIC ROUTES (No authentication required)
# ============================================================================
api_v1_router.include_router(
    slots.router,
    tags=["Public"]
)

# ============================================================================
# CUSTOMER ROUTES (JWT authentication required)
# ============================================================================
api_v1_router.include_router(
    appointments.router,
    tags=["Customer"]
)

# ============================================================================
# DASHBOARD ROUTES (JWT authentication + vendor owner / super admin)
# ============================================================================
api_v1_router.include_router(
    dashboard_appointments.router,
    prefix="/dashboard",
    tags=["Dashboard"]
)

api_v1_router.include_router(
    vendors.router,
    prefix="/dashboard",
    tags=["Dashboard"]
)

# ============================================================================
# WORKER ROUTES (JWT authentication + worker profile)
# ============================================================================
api_v1_router.include_router(
    schedule.router,
    tags=["Worker"]
)


# ============================================================================
# ROOT ENDPOINT - API Info
# ============================================================================
@api_v1_router.get("/", tags=["Info"])
async def api_info():
    """
    API information and available endpoints.
    """
    return {
        "version": "1.0",
        "authentication": {
            "public": "No authentication required",
            "customer": "JWT Bearer token required",
            "dashboard": "JWT Bearer token + vendor owner or super admin role required",
            "worker": "JWT Bearer token + linked worker profile required"
        }
    }


@api_v1_router.get("/health", tags=["Info"])
async def health_check():
    """
    Health check endpoint.
    Useful for monitoring and load balancers.
    """
    return {
        "status": "healthy",
        "version": "1.0",
        "service": "Salon Booking API"
    }
