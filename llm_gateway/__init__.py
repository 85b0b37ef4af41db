from __future__ import annotations  # Re-export llm_gateway public API

from .llm_gateway import (
    GatewayModel,
    HttpClient,
    HttpResponse,
    LanguageModel,
    LlmGatewayError,
    extract_json,
    generate,
    strip_code_fences,
)

__all__ = [
    "GatewayModel",
    "HttpClient",
    "HttpResponse",
    "LanguageModel",
    "LlmGatewayError",
    "extract_json",
    "generate",
    "strip_code_fences",
]
