from __future__ import annotations  # Chat-completions gateway with schema-validated output

import json
import logging
import os
import threading
from typing import Any, Dict, Optional, Protocol, Sequence, Type, TypeVar

import httpx
from langchain_core.messages import BaseMessage
from langchain_core.runnables import RunnableLambda
from pydantic import BaseModel, ValidationError

from config import LlmRoute


logger = logging.getLogger(__name__)


_ROUTE_LOCKS: Dict[str, threading.Lock] = {}
_ROUTE_LOCKS_GUARD = threading.Lock()

_ROLE_BY_MESSAGE_TYPE = {"human": "user", "ai": "assistant", "system": "system"}


class HttpClient(Protocol):  # Subset of httpx.Client used by the gateway
    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> Any: ...


class LlmGatewayError(RuntimeError):
    """Any failure to obtain a schema-valid reply from a route."""


class LlmTransportError(LlmGatewayError):
    """Network failure or non-2xx status from the provider."""


class LlmOutputError(LlmGatewayError):
    """The provider replied, but never with content matching the schema."""


T = TypeVar("T", bound=BaseModel)


def _route_lock(route: LlmRoute) -> threading.Lock:
    key = route.name or f"{route.base_url}{route.endpoint}"
    with _ROUTE_LOCKS_GUARD:
        lock = _ROUTE_LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _ROUTE_LOCKS[key] = lock
    return lock


def call(
    task: str,
    schema: Type[T],
    *,
    cfg: LlmRoute,
    client: Optional[HttpClient] = None,
    options: Optional[Dict[str, Any]] = None,
) -> T:
    """Single-prompt convenience wrapper around :func:`chat`."""
    return chat([{"role": "user", "content": task}], schema, cfg=cfg, client=client, options=options)


def chat(
    messages: Sequence[Dict[str, str]],
    schema: Type[T],
    *,
    cfg: LlmRoute,
    client: Optional[HttpClient] = None,
    options: Optional[Dict[str, Any]] = None,
) -> T:
    """Send ``messages`` to the route and parse the reply into ``schema``.

    Replies that fail schema validation are retried up to ``cfg.max_retries``
    times with a corrective system hint. Transport failures are not retried here.
    """

    if cfg.sequential:
        with _route_lock(cfg):
            return _chat(messages, schema, cfg, client, options)
    return _chat(messages, schema, cfg, client, options)


def _chat(
    messages: Sequence[Dict[str, str]],
    schema: Type[T],
    cfg: LlmRoute,
    client: Optional[HttpClient],
    options: Optional[Dict[str, Any]],
) -> T:
    conversation = _base_messages(messages, schema, cfg.enforce_json)
    attempts = cfg.max_retries + 1
    last_error: Optional[Exception] = None
    logger.info("LLM request route=%s model=%s attempts=%d", cfg.name, cfg.model, attempts)

    owned = client is None
    http = client if client is not None else httpx.Client(timeout=cfg.timeout_s)
    try:
        for attempt in range(attempts):
            attempt_messages = list(conversation)
            if last_error is not None:
                attempt_messages.append({"role": "system", "content": _retry_hint(str(last_error), cfg.enforce_json)})
            content = _send(http, cfg, _payload(cfg, attempt_messages, options))
            try:
                parsed = _validate(schema, content)
            except (json.JSONDecodeError, ValidationError) as exc:
                logger.warning("LLM reply rejected route=%s attempt=%d: %s", cfg.name, attempt + 1, exc)
                last_error = exc
                continue
            logger.info("LLM request done route=%s attempt=%d", cfg.name, attempt + 1)
            return parsed
    finally:
        if owned:
            http.close()
    raise LlmOutputError(f"Route '{cfg.name}' returned no valid reply after {attempts} attempts") from last_error


def _base_messages(messages: Sequence[Dict[str, str]], schema: Type[BaseModel], enforce_json: bool) -> list[Dict[str, str]]:
    base: list[Dict[str, str]] = []
    if enforce_json:
        schema_json = json.dumps(schema.model_json_schema(), indent=2)
        base.append({"role": "system", "content": "Reply with a single JSON object matching this schema:\n" + schema_json})
    for item in messages:
        role = str(item.get("role", "")).strip()
        if not role:
            raise ValueError("Chat message missing role")
        base.append({"role": role, "content": str(item.get("content", ""))})
    return base


def _payload(cfg: LlmRoute, messages: list[Dict[str, str]], options: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"model": cfg.model, "messages": messages}
    if cfg.temperature is not None:
        payload["temperature"] = cfg.temperature
    if cfg.response_format:
        payload["response_format"] = {"type": cfg.response_format}
    if options:
        payload.update(options)
    return payload


def _headers(cfg: LlmRoute) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if cfg.api_key_env:
        api_key = os.getenv(cfg.api_key_env)
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
    headers.update(cfg.extra_headers)
    return headers


def _send(http: HttpClient, cfg: LlmRoute, payload: Dict[str, Any]) -> str:
    url = f"{cfg.base_url}{cfg.endpoint}"
    try:
        response = http.post(url, json=payload, headers=_headers(cfg), timeout=cfg.timeout_s)
    except httpx.HTTPError as exc:
        logger.error("LLM transport failure route=%s: %s", cfg.name, exc)
        raise LlmTransportError(f"Route '{cfg.name}' unreachable") from exc
    if response.status_code >= 400:
        logger.error("LLM error status route=%s status=%s", cfg.name, response.status_code)
        raise LlmTransportError(f"Route '{cfg.name}' returned status {response.status_code}")
    try:
        data = response.json()
    except ValueError as exc:
        raise LlmTransportError(f"Route '{cfg.name}' returned a non-JSON body") from exc
    return _extract_content(data)


def _extract_content(data: Any) -> str:
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
            if isinstance(message, dict) and isinstance(message.get("content"), str):
                return message["content"]
        if isinstance(data.get("content"), str):
            return data["content"]
    raise LlmOutputError("LLM response missing content")


def _validate(schema: Type[T], content: str) -> T:
    return schema.model_validate_json(_strip_code_fences(content))


def _strip_code_fences(content: str) -> str:
    text = content.strip()
    if not text.startswith("```"):
        return text
    lines = text.splitlines()[1:]
    if lines and lines[-1].strip() == "```":
        lines = lines[:-1]
    return "\n".join(lines).strip()


def _retry_hint(error_text: str, enforce_json: bool) -> str:
    reason = error_text.splitlines()[0].strip() if error_text else ""
    if len(reason) > 200:
        reason = reason[:197] + "..."
    hint = "The previous reply failed validation."
    if reason:
        hint += f" Reason: {reason}."
    if enforce_json:
        return hint + " Return a single JSON object that matches the schema."
    return hint + " Follow the requested format precisely."


def runnable(route: LlmRoute, schema: Type[T], *, client: Optional[HttpClient] = None) -> RunnableLambda:
    """Expose a route as a LangChain runnable so prompt templates can pipe into it."""

    def _invoke(payload: Any) -> T:
        return chat(_coerce_messages(payload), schema, cfg=route, client=client)

    return RunnableLambda(_invoke)


def _coerce_messages(payload: Any) -> list[Dict[str, str]]:
    if hasattr(payload, "to_messages"):
        payload = payload.to_messages()
    if isinstance(payload, (BaseMessage, dict)):
        payload = [payload]
    if not isinstance(payload, (list, tuple)):
        raise TypeError("Unsupported message payload for LLM runnable")
    return [_message_dict(item) if isinstance(item, BaseMessage) else dict(item) for item in payload]


def _message_dict(message: BaseMessage) -> Dict[str, str]:
    role = _ROLE_BY_MESSAGE_TYPE.get(message.type, message.type)
    content = message.content if isinstance(message.content, str) else json.dumps(message.content)
    return {"role": role, "content": content}
