"""VoiceCart HTTP API."""

import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# .env sits at the project root, next to main.py
load_dotenv(dotenv_path=Path(__file__).parent.parent / ".env")

from voicecart import __version__
from voicecart.config import AssistantConfig
from backend.api.routes import router
from backend.services.orchestrator_service import orchestrator_service

config = AssistantConfig.from_env()
logging.basicConfig(
    level=getattr(logging, config.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="VoiceCart API",
    description="Emotion-adaptive voice shopping assistant: utterances, cart, consent and connectivity",
    version=__version__,
)

# Browser hosts run the microphone and speaker and call this API
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.exception_handler(RuntimeError)
async def service_unavailable(request: Request, exc: RuntimeError):
    """The orchestrator failed to start or was never initialized."""
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.on_event("startup")
async def startup_event():
    logger.info(
        f"Starting VoiceCart API (speech output: {'azure' if config.azure_enabled else 'text only'}, "
        f"prosody: {'hume' if config.prosody_enabled else 'keywords only'})"
    )
    await orchestrator_service.initialize(config)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down VoiceCart API...")
    await orchestrator_service.shutdown()


@app.get("/")
async def root():
    return {
        "message": "VoiceCart API",
        "version": __version__,
        "docs": "/docs",
        "health": "/api/health"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("backend.main:app", host="0.0.0.0", port=8000, log_level=config.log_level.lower())
