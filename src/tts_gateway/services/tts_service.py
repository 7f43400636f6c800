import logging
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Optional
from urllib.parse import quote

import httpx

from ..config import Settings
from .auth_headers import HeaderForge
from .fingerprint import BrowserProfile

logger = logging.getLogger(__name__)

FALLBACK_VOICE = "DeepSeek"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# Characters left unescaped by a browser's encodeURIComponent
_URI_COMPONENT_SAFE = "!~*'()"


class UpstreamHTTPError(Exception):
    """Non-success HTTP status returned by the upstream platform."""

    def __init__(self, status_code: int, detail: Any):
        super().__init__(f"HTTP {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class CatalogError(Exception):
    """The voice catalog payload is missing or malformed."""


@dataclass(frozen=True)
class VoiceInfo:
    name: str
    icon_url: str


def encode_speech_body(text: str) -> str:
    """Build the form body expected by the audio endpoint."""
    return f"&text={quote(text, safe=_URI_COMPONENT_SAFE)}&audio_type=mp3&format=stream"


def parse_voice_catalog(payload: Any) -> dict[str, VoiceInfo]:
    """Turn the ``/api/robot/platform`` payload into a voice mapping."""
    try:
        items = payload["data"]["list"]
    except (KeyError, TypeError) as exc:
        raise CatalogError(f"Unexpected catalog shape: {exc!r}") from exc
    if not isinstance(items, list):
        raise CatalogError("Catalog list is not an array")

    voices: dict[str, VoiceInfo] = {}
    for item in items:
        if not isinstance(item, dict):
            raise CatalogError(f"Catalog entry is not an object: {item!r}")
        tag = item.get("tag")
        if not tag:
            continue
        voices[str(tag)] = VoiceInfo(
            name=str(item.get("title") or tag),
            icon_url=str(item.get("icon") or ""),
        )
    return voices


class NanoTTSService:
    """
    Client for the upstream web TTS platform.

    Every call is authenticated with a freshly forged header set. The voice
    catalog is loaded once at startup via load_voices() and only read
    afterwards.

    Audio is fetched per segment by stream_audio(), which yields body chunks
    as they arrive from the network. It raises UpstreamHTTPError or
    httpx.HTTPError on failure; deciding what a failed segment means is left
    to the caller.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        forge: Optional[HeaderForge] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings
        self.base_url = settings.upstream_root
        self.forge = forge or HeaderForge(
            BrowserProfile(user_agent=settings.upstream_user_agent)
        )
        self._http_client = http_client
        self.voices: dict[str, VoiceInfo] = {}

    def get_http_client(self) -> httpx.AsyncClient:
        """Get the shared HTTP client for connection pooling."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._settings.request_timeout)
            )
            logger.info("Created httpx.AsyncClient for upstream TTS")
        return self._http_client

    async def aclose(self) -> None:
        """Close the HTTP client. Call on app shutdown."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
            logger.info("Closed upstream TTS HTTP client")

    async def load_voices(self) -> dict[str, VoiceInfo]:
        """
        Load the voice catalog, falling back to a single default voice.

        Never raises: an unreachable upstream, an error status or an
        unexpected payload all install the fallback entry.
        """
        logger.info("Loading voice catalog from %s", self.base_url)
        client = self.get_http_client()
        try:
            response = await client.get(
                f"{self.base_url}/api/robot/platform",
                headers=await self.forge.build_headers(),
            )
            if not response.is_success:
                raise UpstreamHTTPError(response.status_code, response.text[:200])
            voices = parse_voice_catalog(response.json())
        except (httpx.HTTPError, UpstreamHTTPError, CatalogError, ValueError) as exc:
            logger.warning(f"Failed to load voice catalog, using fallback: {exc}")
            fallback = self._settings.default_voice or FALLBACK_VOICE
            self.voices = {fallback: VoiceInfo(name=f"{fallback} (default)", icon_url="")}
            return self.voices

        self.voices = voices
        logger.info(f"Loaded {len(self.voices)} voices")
        return self.voices

    async def stream_audio(self, text: str, voice: str) -> AsyncGenerator[bytes, None]:
        """Stream MP3 audio for one segment as network chunks arrive."""
        headers = await self.forge.build_headers()
        headers["Content-Type"] = FORM_CONTENT_TYPE

        client = self.get_http_client()
        async with client.stream(
            "POST",
            f"{self.base_url}/api/tts/v1",
            params={"roleid": voice},
            headers=headers,
            content=encode_speech_body(text),
        ) as response:
            if not response.is_success:
                body = await response.aread()
                raise UpstreamHTTPError(
                    response.status_code, body[:200].decode("utf-8", "replace")
                )
            async for chunk in response.aiter_bytes():
                if chunk:
                    yield chunk
