from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
import logging

from backoffice.config import settings
from backoffice.database import db
from backoffice.api import expenses, audits, access, notifications

# Setup Logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    db.connect()
    yield
    db.close()

app = FastAPI(
    title="Tyre Back-Office API",
    description="Expense decisions, audit trail and access control for the tyre back-office dashboard",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS Config
origins = [
    "http://localhost:3000",
    "http://localhost:8000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Router Registration
app.include_router(expenses.router)
app.include_router(audits.router)
app.include_router(access.router)
app.include_router(notifications.router)

# Health Check
@app.get("/health")
async def health_check():
    return {"status": "ok", "environment": settings.ENVIRONMENT}

if __name__ == "__main__":
    uvicorn.run("backoffice.main:app", host="0.0.0.0", port=8000, reload=True)
