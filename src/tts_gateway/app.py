"""Application factory for the TTS gateway."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .routers.speech import public_router
from .routers.speech import router as speech_router
from .services.tts.tts_processor import AudioChunkAssembler
from .services.tts_service import NanoTTSService


def _configure_logging() -> None:
    """Configure logging based on LOG_LEVEL environment variable."""
    # Load .env file first to ensure LOG_FILE is available
    load_dotenv()

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handlers: list[logging.Handler] = []

    log_file = os.getenv("LOG_FILE")
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    # Always add console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    logging.getLogger("tts_gateway").setLevel(log_level)

    logging.getLogger("uvicorn").setLevel(log_level)
    logging.getLogger("uvicorn.access").setLevel(log_level)
    logging.getLogger("uvicorn.error").setLevel(log_level)

    # Forged headers show up in httpx debug output, keep it quiet by default
    if log_level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def create_app() -> FastAPI:
    # Configure logging first thing
    _configure_logging()

    settings = get_settings()

    tts_service = NanoTTSService(settings)
    assembler = AudioChunkAssembler(
        tts_service,
        concurrency=settings.tts_concurrency,
        max_segment_chars=settings.segment_max_chars,
        segment_timeout=settings.request_timeout,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # The catalog is written once here, before any request is served.
        await tts_service.load_voices()
        try:
            yield
        finally:
            try:
                await tts_service.aclose()
            except Exception as exc:
                logging.warning("Error closing upstream client: %s", exc)

    app = FastAPI(
        title="Nano TTS Gateway",
        version="0.1.0",
        description="OpenAI-compatible speech endpoint backed by a web TTS service.",
        lifespan=lifespan,
    )

    app.state.tts_service = tts_service
    app.state.audio_assembler = assembler

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(public_router)
    app.include_router(speech_router)

    return app


__all__ = ["create_app"]
