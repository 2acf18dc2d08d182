from dotenv import load_dotenv

# Load .env into the process before settings and SDK clients read it
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from src.core.config import settings
from src.core.logging import configure_logging
from src.routers.admin import router as router_admin
from src.routers.conversations import router as router_conversations
from src.routers.help_request import router as router_help_requests
from src.routers.knowledge_base import router as router_knowledge_base
from src.routers.livekit import router as router_livekit
import logging

configure_logging(settings.debug)

logger = logging.getLogger("fastapi_server")
logger.setLevel(logging.INFO)

app = FastAPI(title=settings.app_name)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],                      # Allow all HTTP methods
    allow_headers=["*"],                      # Allow all headers
)
# Include routers
app.include_router(router_conversations)
app.include_router(router_help_requests)
app.include_router(router_knowledge_base)
app.include_router(router_admin)
app.include_router(router_livekit)

logger.info(f"{settings.app_name} routes registered")


@app.get("/")
async def root():
    return {"status": "running"}


@app.get("/health")
async def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("src.main:app", host="0.0.0.0", port=3000)
