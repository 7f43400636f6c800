"""OpenAI-compatible speech API routes."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import PlainTextResponse, Response, StreamingResponse

from ..config import Settings, get_settings
from ..schemas.speech import ModelCard, ModelList, SpeechRequest, VoiceEntry
from ..services.tts.tts_processor import AudioChunkAssembler
from ..services.tts_service import NanoTTSService

logger = logging.getLogger(__name__)

AUDIO_MEDIA_TYPE = "audio/mpeg"

public_router = APIRouter(tags=["health"])


def require_api_key(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    expected = f"Bearer {settings.static_api_key.get_secret_value()}"
    if authorization != expected:
        reason = "wrong API key" if authorization else "missing Authorization header"
        logger.warning(f"Authorization failed: {reason}")
        raise HTTPException(status_code=401, detail="Unauthorized")


router = APIRouter(prefix="/v1", tags=["speech"], dependencies=[Depends(require_api_key)])


def get_tts_service(request: Request) -> NanoTTSService:
    service = getattr(request.app.state, "tts_service", None)
    if service is None:  # pragma: no cover - defensive
        raise RuntimeError("TTS service is not configured")
    return service


def get_audio_assembler(request: Request) -> AudioChunkAssembler:
    assembler = getattr(request.app.state, "audio_assembler", None)
    if assembler is None:  # pragma: no cover - defensive
        raise RuntimeError("Audio assembler is not configured")
    return assembler


@public_router.get("/ping", response_class=PlainTextResponse)
async def ping() -> str:
    return "pong"


@router.get("/models", response_model=ModelList)
async def list_models(
    service: NanoTTSService = Depends(get_tts_service),
) -> ModelList:
    created = int(time.time())
    return ModelList(
        data=[
            ModelCard(id=tag, created=created, description=info.name)
            for tag, info in service.voices.items()
        ]
    )


@router.get("/voices", response_model=dict[str, VoiceEntry])
async def list_voices(
    service: NanoTTSService = Depends(get_tts_service),
) -> dict[str, VoiceEntry]:
    return {
        tag: VoiceEntry(name=info.name, icon_url=info.icon_url)
        for tag, info in service.voices.items()
    }


@router.post("/audio/speech", response_model=None)
async def create_speech(
    payload: SpeechRequest,
    assembler: AudioChunkAssembler = Depends(get_audio_assembler),
) -> Response:
    """Synthesize ``input`` with voice ``model`` and return MP3 audio."""

    if not payload.model or not payload.input:
        raise HTTPException(status_code=400, detail="Missing model or input")

    try:
        chunks = assembler.stream_text(
            payload.input, payload.model, concurrency=payload.concurrency
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    logger.info(
        f"Speech request: voice={payload.model}, chars={len(payload.input)}, "
        f"stream={payload.stream}"
    )

    if payload.stream:
        return StreamingResponse(chunks, media_type=AUDIO_MEDIA_TYPE)

    audio = bytearray()
    try:
        async for chunk in chunks:
            audio.extend(chunk)
    except Exception as exc:
        logger.exception("Non-streaming synthesis failed")
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    logger.info(f"Non-streaming response complete: {len(audio)} bytes")
    return Response(content=bytes(audio), media_type=AUDIO_MEDIA_TYPE)
