"""
FastAPI application entry-point.
"""
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.routers import catalog, reports, schedules

app = FastAPI(
    title="Report Engine",
    version="0.1.0",
    description="Configurable reports: execute, chart, export and schedule",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(catalog.router, tags=["Catalog"])
app.include_router(reports.router, prefix="/reports", tags=["Reports"])
app.include_router(schedules.router, prefix="/schedules", tags=["Schedules"])


@app.get("/health")
def health():
    return {"status": "ok"}
