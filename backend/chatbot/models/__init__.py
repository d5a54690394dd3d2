"""Pydantic models for API requests and responses."""

from .responses import ChatRequest, ChatResponse, ProviderInfo, ProvidersResponse

__all__ = ["ChatRequest", "ChatResponse", "ProviderInfo", "ProvidersResponse"]
