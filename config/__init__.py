"""Configuration package for the interview session service."""
from .app_config import AppConfig, LlmRoute, load_config, resolve_route
from .registry import EVAL_KEY, QUESTION_KEY, bind_model, get_model, unbind_model
from .settings import Settings, settings

__all__ = [
    "AppConfig",
    "LlmRoute",
    "load_config",
    "resolve_route",
    "EVAL_KEY",
    "QUESTION_KEY",
    "bind_model",
    "get_model",
    "unbind_model",
    "Settings",
    "settings",
]
