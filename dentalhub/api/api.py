from fastapi import APIRouter
from .endpoints import dashboard, database, patients, system

api_router = APIRouter()

api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
api_router.include_router(database.router, prefix="/database", tags=["Database"])
api_router.include_router(patients.router, prefix="/nexhealth", tags=["NexHealth Patients"])

# No prefix: serves /health-check
api_router.include_router(system.router, tags=["System"])
