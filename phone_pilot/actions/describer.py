"""
Human-readable action descriptions.

One mapping from action type plus optional parameters to a string; the
execution model (:data:`Action`) and the display model (:class:`ParsedAction`)
both go through it.
"""

from typing import Optional

from phone_pilot.actions.types import (
    Action,
    ActionType,
    DoubleTap,
    Error,
    Finish,
    Launch,
    LongPress,
    ParsedAction,
    Swipe,
    Tap,
    TypeText,
    Wait,
    action_type_of,
)
from phone_pilot.config.i18n import get_message

# type -> (plain message, message with parameter, parameter keys)
_DESCRIPTIONS = {
    ActionType.TAP: ("action_tap", "action_tap_with_element", ("element",)),
    ActionType.DOUBLE_TAP: ("action_double_tap", "action_double_tap_with_element", ("element",)),
    ActionType.LONG_PRESS: ("action_long_press", "action_long_press_with_element", ("element",)),
    ActionType.SWIPE: ("action_swipe", "action_swipe_with_coordinates", ("start", "end")),
    ActionType.TYPE: ("action_type", "action_type_with_text", ("text",)),
    ActionType.TYPE_NAME: ("action_type_name", "action_type_name_with_text", ("text",)),
    ActionType.LAUNCH: ("action_launch", "action_launch_with_app", ("app",)),
    ActionType.BACK: ("action_back", None, ()),
    ActionType.HOME: ("action_home", None, ()),
    ActionType.WAIT: ("action_wait", "action_wait_with_duration", ("duration",)),
    ActionType.FINISH: ("action_finish", "action_finish_with_message", ("message",)),
    ActionType.TAKE_OVER: ("action_take_over", "action_take_over_with_message", ("message",)),
    ActionType.INTERACT: ("action_interact", None, ()),
    ActionType.NOTE: ("action_note", None, ()),
    ActionType.CALL_API: ("action_call_api", "action_call_api_with_instruction", ("instruction",)),
}


def describe_type(
    action_type: ActionType,
    params: Optional[dict[str, str]] = None,
    lang: str = "cn",
) -> str:
    """
    Describe an action type, using its parameters when all are present.

    Args:
        action_type: Type to describe.
        params: Raw parameter strings, e.g. {"element": "[500, 750]"}.
        lang: Message language.

    Returns:
        Description such as "Tap [500, 750]".
    """
    if action_type not in _DESCRIPTIONS:
        reason = (params or {}).get("reason", "")
        return get_message("action_unknown", lang).format(reason).strip()

    plain_key, detailed_key, keys = _DESCRIPTIONS[action_type]
    if detailed_key and params:
        values = [params.get(k) for k in keys]
        if all(values):
            return get_message(detailed_key, lang).format(*values)
    return get_message(plain_key, lang)


def describe_action(action: Action, lang: str = "cn") -> str:
    """Describe an executable action for status updates."""
    params: Optional[dict[str, str]] = None
    if isinstance(action, (Tap, DoubleTap, LongPress)):
        params = {"element": f"({action.x}, {action.y})"}
    elif isinstance(action, Swipe):
        params = {
            "start": f"({action.start_x}, {action.start_y})",
            "end": f"({action.end_x}, {action.end_y})",
        }
    elif isinstance(action, TypeText):
        params = {"text": action.text}
    elif isinstance(action, Launch):
        params = {"app": action.app}
    elif isinstance(action, Wait):
        params = {"duration": f"{action.duration_ms / 1000:g}s"}
    elif isinstance(action, Finish) and action.message:
        params = {"message": action.message}
    elif isinstance(action, Error):
        params = {"reason": action.reason}
    return describe_type(action_type_of(action), params, lang)


def describe_parsed(parsed: ParsedAction, lang: str = "cn") -> str:
    """Describe a display-parsed action with the parameters as written."""
    return describe_type(parsed.type, parsed.raw_params, lang)
