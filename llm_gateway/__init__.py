from __future__ import annotations  # Re-export llm_gateway public API

from .llm_gateway import HttpClient, LlmGatewayError, LlmOutputError, LlmTransportError, call, chat, runnable

__all__ = ["HttpClient", "LlmGatewayError", "LlmOutputError", "LlmTransportError", "call", "chat", "runnable"]
