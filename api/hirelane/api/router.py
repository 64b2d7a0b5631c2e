from fastapi import APIRouter

from hirelane.api.routes import admin, applications, auth, categories, companies, health, jobs, saved_jobs

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
api_router.include_router(applications.router, prefix="/applications", tags=["applications"])
api_router.include_router(companies.router, prefix="/companies", tags=["companies"])
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(saved_jobs.router, prefix="/saved-jobs", tags=["saved-jobs"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
