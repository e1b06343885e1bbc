"""
RAC Dashboard API Routers

Each module in this package defines a FastAPI APIRouter for one area of
the application (session cache, tenant credentials).
Routers are included in the main FastAPI app in main.py.
"""
