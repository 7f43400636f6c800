"""Schemas for the OpenAI-compatible speech endpoints."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class SpeechRequest(BaseModel):
    """Body of ``POST /v1/audio/speech``.

    ``model`` carries the upstream voice tag. Fields are optional here so a
    missing value is reported as a plain 400 rather than a validation error.
    """

    model_config = ConfigDict(extra="ignore")

    model: str | None = Field(default=None, description="Voice tag to synthesize with.")
    input: str | None = Field(default=None, description="Text to synthesize.")
    stream: bool = Field(
        default=False,
        description="Stream audio as it arrives instead of returning one body.",
    )
    concurrency: int | None = Field(
        default=None,
        ge=1,
        le=16,
        description="Upstream requests in flight per batch. Defaults to the server setting.",
    )


class ModelCard(BaseModel):
    id: str
    object: Literal["model"] = "model"
    created: int
    owned_by: str = "nanoai"
    description: str


class ModelList(BaseModel):
    object: Literal["list"] = "list"
    data: list[ModelCard]


class VoiceEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    icon_url: str = Field(default="", serialization_alias="iconUrl")
