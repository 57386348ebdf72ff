"""Invoke registry-bound collaborators with a bounded wall-clock timeout."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Any, Optional, Type

from config.registry import get_model
from config.settings import settings
from interview_session.errors import UpstreamError
from observability import span

logger = logging.getLogger(__name__)

# Calls that overrun their timeout keep running here until the collaborator returns.
_EXECUTOR = ThreadPoolExecutor(max_workers=16, thread_name_prefix="upstream")


def invoke_model(
    key: str,
    *,
    error_cls: Type[UpstreamError] = UpstreamError,
    session_id: Optional[str] = None,
    timeout_s: Optional[float] = None,
    **kwargs: Any,
) -> Any:
    """Call the callable bound to ``key`` and return its raw result.

    Raises:
        UpstreamError: (as ``error_cls``) when nothing is bound, the call
            raises, or it does not return within the timeout.
    """

    try:
        fn = get_model(key)
    except KeyError as exc:
        raise error_cls(f"No implementation bound for {key}") from exc

    timeout = timeout_s if timeout_s is not None else settings.UPSTREAM_TIMEOUT_S
    with span(key, session_id):
        future = _EXECUTOR.submit(fn, **kwargs)
        try:
            return future.result(timeout=timeout)
        except FutureTimeout as exc:
            future.cancel()
            logger.warning("%s timed out after %.1fs (session=%s)", key, timeout, session_id)
            raise error_cls(f"{key} did not respond within {timeout:g}s") from exc
        except UpstreamError:
            raise
        except Exception as exc:
            logger.warning("%s failed (session=%s): %s", key, session_id, exc)
            raise error_cls(f"{key} failed: {exc}") from exc


__all__ = ["invoke_model"]
