"""
TTS (Text-to-Speech) Services Package.

This package contains the modules that turn one long text into an ordered
stream of upstream audio:

- text_segmenter: Splits input text into length-bounded segments
- tts_processor: Fetches segments serially or in batches and reorders audio

Architecture Overview:

    ┌────────────┐     ┌────────────┐     ┌─────────────────────┐     ┌─────────────┐
    │ Input text │────▶│ split_text │────▶│ AudioChunkAssembler │────▶│ audio_queue │
    └────────────┘     └────────────┘     └─────────────────────┘     └─────────────┘
                                                    │                        │
                                                    ▼                        ▼
                                          ┌────────────────┐       ┌──────────────────┐
                                          │ NanoTTSService │       │ HTTP audio/mpeg  │
                                          │ (one call per  │       │ response body    │
                                          │  segment)      │       └──────────────────┘
                                          └────────────────┘

Output order always follows segment order, whatever order the upstream
calls finish in. Failed segments are dropped, not retried.
"""

from .text_segmenter import split_text
from .tts_processor import AudioChunkAssembler

__all__ = ["AudioChunkAssembler", "split_text"]
