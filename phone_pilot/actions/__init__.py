from .describer import describe_action, describe_parsed, describe_type
from .executor import ActionExecutor, ExecutorTimings
from .parser import (
    extract_action_string,
    parse_action,
    parse_action_params,
    parse_response,
    parse_response_parts,
    split_response,
    unescape_response,
)
from .types import (
    Action,
    ActionType,
    Back,
    DoubleTap,
    Error,
    Finish,
    Home,
    Launch,
    LongPress,
    ParsedAction,
    Swipe,
    Tap,
    TypeText,
    Unknown,
    Wait,
    action_type_of,
)

__all__ = [
    "Action",
    "ActionType",
    "ParsedAction",
    "Tap",
    "DoubleTap",
    "LongPress",
    "Swipe",
    "TypeText",
    "Launch",
    "Back",
    "Home",
    "Wait",
    "Finish",
    "Error",
    "Unknown",
    "action_type_of",
    "ActionExecutor",
    "ExecutorTimings",
    "split_response",
    "extract_action_string",
    "parse_action",
    "parse_action_params",
    "parse_response",
    "parse_response_parts",
    "unescape_response",
    "describe_action",
    "describe_parsed",
    "describe_type",
]
