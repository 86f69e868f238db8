"""
Partner Billing API - Main Application.

FastAPI application with CORS enabled for the admin frontend.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__

load_dotenv(dotenv_path=Path(__file__).parent.parent / ".env")

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create FastAPI application
app = FastAPI(
    title="Partner Billing API",
    description="Reconcile partner leads against invoices and generate partner invoices",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# TODO: Restrict origins to the admin frontend host in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "partner-billing-api"
    }


@app.get("/", tags=["Root"])
def root():
    return {
        "message": "Partner Billing API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import billing, invoices

app.include_router(billing.router, prefix="/api/v1", tags=["Billing"])
app.include_router(invoices.router, prefix="/api/v1", tags=["Invoices"])
