# main.py
import os
import logging
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Settings are read at import time by the modules below
load_dotenv()

from .db.connection import close_connection
from .db.init_collections import init_mongodb
from .http_api.errors import register_exception_handlers
from .http_api.logging_middleware import LoggingMiddleware
from .http_api.rate_limiter import RateLimitMiddleware
from .http_api.router import router as api_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
SEED_SAMPLE_DATA = os.getenv("SEED_SAMPLE_DATA", "false").lower() == "true"

def init_database():
    """Create collections and indexes, optionally seeding the sample catalog"""
    try:
        logger.info("🗄️  Initializing database...")
        init_mongodb(drop_existing=False, insert_samples=SEED_SAMPLE_DATA)
    except Exception as e:
        logger.error(f"❌ Database initialization failed: {e}")
        logger.warning("⚠️  Server starting without database initialization")

@asynccontextmanager
async def lifespan(app: FastAPI):
    init_database()
    logger.info("🚀 Server startup complete!")

    yield

    close_connection()
    logger.info("👋 Server shutdown complete")

app = FastAPI(
    title="TuneVault API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RateLimitMiddleware)

register_exception_handlers(app)

app.include_router(api_router, prefix="/api")

@app.get("/")
async def root():
    return {"message": "Server is Running"}

def run():
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "5000")))

if __name__ == "__main__":
    run()
