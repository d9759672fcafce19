# Config Module
from .i18n import get_message, get_messages
from .prompts import build_system_prompt, get_system_prompt
from .settings import Settings, get_settings, save_settings

__all__ = [
    "Settings",
    "get_settings",
    "save_settings",
    "get_message",
    "get_messages",
    "get_system_prompt",
    "build_system_prompt",
]
