"""
V1 API router aggregator: wires all endpoint modules together.
"""

from fastapi import APIRouter

from headcount.api.v1.endpoints import auth, employees, reports, scan

api_router = APIRouter()

# Operator login, refresh, account management
api_router.include_router(auth.router)

# Code submission from scanning devices
api_router.include_router(scan.router)

# Roster
api_router.include_router(employees.router)

# Ledger reports, health
api_router.include_router(reports.router)
