"""FastAPI application for flow translation and deployment."""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.config import Settings
from src.routes import flows

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Load environment variables
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown events."""
    settings = Settings.from_env()
    logger.info("Starting Flow Rules Service...")
    logger.info(f"Server running on port {os.getenv('PORT', '3000')}")
    logger.info(f"RULE_ENGINE_URL: {settings.rule_engine_url}")
    logger.info(f"BROKER_URL: {settings.broker_url}")
    logger.info(f"HISTORY_URL: {settings.history_url}")
    logger.info("Ready for requests")
    yield
    logger.info("Shutting down Flow Rules Service...")


app = FastAPI(
    title="Flow Rules",
    description="Translates flow graphs into broker subscriptions and CEP rules",
    version="0.1.0",
    lifespan=lifespan,
)

cors_origins = os.getenv("CORS_ORIGINS", "*").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(flows.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
