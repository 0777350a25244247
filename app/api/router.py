"""API router aggregation."""

from fastapi import APIRouter

from app.api import auth, ooo, reimbursements, users

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/auth/users", tags=["Users"])
api_router.include_router(reimbursements.router, prefix="/reimbursements", tags=["Reimbursements"])
api_router.include_router(ooo.router, prefix="/ooo", tags=["Out of Office"])
