"""
V1 API router aggregator: wires all endpoint modules together.
"""

from fastapi import APIRouter

from workforce.api.v1.endpoints import attendance, employees, health, leaves

api_router = APIRouter()

# Daily attendance, breaks, approvals
api_router.include_router(attendance.router)

# Leave requests and staged approval
api_router.include_router(leaves.router)

# Employee directory (org structure)
api_router.include_router(employees.router)

# Health
api_router.include_router(health.router)
