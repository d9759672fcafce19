"""
Parse model responses into actions.

A response looks like free-form reasoning followed by one call::

    The search box is at the top. do(action="Tap", element=[500, 120])

Positions are written on a 0-1000 logical grid per axis and converted to
absolute pixels here. Every function in this module is pure.
"""

import logging
import math
import re

from phone_pilot.actions.types import (
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
)

logger = logging.getLogger(__name__)

LOGICAL_GRID = 1000

_CALL_START = re.compile(r"\b(do|finish)\s*\(")
_FINISH_CALL = re.compile(
    r"""finish\s*\(\s*message\s*=\s*(["'])(.*?)\1\s*\)""", re.IGNORECASE | re.DOTALL
)
_DO_CALL = re.compile(r"do\s*\((.*)\)", re.IGNORECASE | re.DOTALL)
_STRING_PARAM = re.compile(r"""(\w+)\s*=\s*(["'])(.*?)\2""", re.DOTALL)
_LIST_PARAM = re.compile(r"(\w+)\s*=\s*[\[(]([^\[\]()\"']*)[\])]")

_NOT_EXECUTABLE = {
    ActionType.TAKE_OVER,
    ActionType.INTERACT,
    ActionType.NOTE,
    ActionType.CALL_API,
    ActionType.UNKNOWN,
}


def unescape_response(text: str) -> str:
    """Turn literal escape sequences of an over-escaped response into characters."""
    return (
        text.replace("\\n", "\n")
        .replace("\\t", "\t")
        .replace("\\r", "\r")
        .replace('\\"', '"')
        .replace("\\\\", "\\")
    )


def _find_matching_paren(text: str, start: int) -> int:
    """
    Find the ")" closing the call whose "(" sits right before ``start``.

    Nested parentheses are depth-counted; parentheses inside quoted strings
    are ignored.

    Returns:
        Index of the matching ")", or -1 if the call never closes.
    """
    depth = 1
    quote = None
    i = start
    while i < len(text):
        char = text[i]
        if quote:
            if char == "\\":
                i += 1
            elif char == quote:
                quote = None
        elif char in ('"', "'"):
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def split_response(text: str) -> tuple[str, str]:
    """
    Split a response into reasoning and the first action call.

    Args:
        text: Raw (already unescaped) model response.

    Returns:
        (reasoning, action_string). ``action_string`` is the first balanced
        ``do(...)``/``finish(...)`` call, or the rest of the text when the
        call never closes. Without any call the whole text is reasoning and
        ``action_string`` is empty.
    """
    content = text.strip()
    match = _CALL_START.search(content)
    if not match:
        return content, ""

    reasoning = content[: match.start()].strip()
    end = _find_matching_paren(content, match.end())
    if end < 0:
        return reasoning, content[match.start():].strip()
    return reasoning, content[match.start(): end + 1].strip()


def extract_action_string(text: str) -> str:
    """Return only the action half of :func:`split_response`."""
    return split_response(text)[1]


def _format_number(value: float) -> str:
    return str(int(value)) if value == int(value) else str(value)


def parse_action_params(args: str) -> tuple[dict[str, str], dict[str, str | list[float]]]:
    """
    Extract parameters from the argument list of a call.

    Args:
        args: Text between the call's parentheses, e.g.
            'action="Tap", element=[500, 750]'.

    Returns:
        (raw_params, normalized_params). Strings appear in both. Number lists
        are normalized to floats and re-rendered as "[500, 750]" in raw form.
        A list holding anything but numbers is kept raw only, so callers can
        report it instead of guessing.
    """
    raw_params: dict[str, str] = {}
    normalized_params: dict[str, str | list[float]] = {}

    for match in _STRING_PARAM.finditer(args):
        key, value = match.group(1), match.group(3)
        raw_params[key] = value
        normalized_params[key] = value

    for match in _LIST_PARAM.finditer(args):
        key, body = match.group(1), match.group(2)
        items = [item.strip() for item in body.split(",")]
        if items == [""]:
            items = []
        try:
            values = [float(item) for item in items]
        except ValueError:
            raw_params[key] = match.group(0).split("=", 1)[1].strip()
            normalized_params.pop(key, None)
            continue
        raw_params[key] = "[" + ", ".join(_format_number(v) for v in values) + "]"
        normalized_params[key] = values

    return raw_params, normalized_params


def _to_pixels(logical: float, dimension: int) -> int:
    # half-up rounding, independent of Python's banker's rounding
    return int(math.floor(logical / LOGICAL_GRID * dimension + 0.5))


def _point_param(
    key: str,
    raw: dict[str, str],
    params: dict[str, str | list[float]],
    screen_width: int,
    screen_height: int,
) -> tuple[int, int] | str:
    """Resolve a point or box parameter to pixels; a string result is an error reason."""
    value = params.get(key)
    if not isinstance(value, list):
        if key in raw:
            return f"Malformed {key}: {raw[key]}"
        return f"Missing {key}"

    if len(value) == 2:
        x, y = value
    elif len(value) == 4:
        # bounding box [y1, x1, y2, x2]
        y1, x1, y2, x2 = value
        x, y = (x1 + x2) / 2, (y1 + y2) / 2
    else:
        return f"Invalid {key} format: {raw.get(key, value)}"

    return _to_pixels(x, screen_width), _to_pixels(y, screen_height)


def _parse_duration_ms(value: str | None) -> int | None:
    if value is None:
        return 1000
    cleaned = value.lower().replace("seconds", "").replace("second", "").strip()
    if cleaned.endswith("s"):
        cleaned = cleaned[:-1].strip()
    try:
        seconds = float(cleaned)
    except ValueError:
        return None
    if seconds < 0:
        return None
    return int(seconds * 1000)


def parse_action(action_string: str, screen_width: int, screen_height: int) -> Action:
    """
    Parse an extracted action string into an executable action.

    Args:
        action_string: e.g. 'do(action="Tap", element=[500, 750])' or
            'finish(message="Done")'.
        screen_width: Screen width in pixels.
        screen_height: Screen height in pixels.

    Returns:
        The typed action. Malformed input yields ``Error`` with a reason,
        unrecognised action names yield ``Unknown``.
    """
    clean = action_string.strip()
    logger.debug("Parsing action: %s", clean)

    if not clean:
        return Error("No action in response")

    if clean.lower().startswith("finish"):
        finish_match = _FINISH_CALL.match(clean)
        if finish_match:
            return Finish(finish_match.group(2))
        return Error(f"Missing message for finish: {clean}")

    do_match = _DO_CALL.match(clean)
    if not do_match:
        return Error(f"Unknown action format: {clean}")

    raw, params = parse_action_params(do_match.group(1))
    name = params.get("action")
    if not isinstance(name, str):
        return Error("Missing action type")

    action_type = ActionType.from_string(name)

    if action_type in (ActionType.TAP, ActionType.DOUBLE_TAP, ActionType.LONG_PRESS):
        point = _point_param("element", raw, params, screen_width, screen_height)
        if isinstance(point, str):
            return Error(f"{point} for {name}")
        factory = {
            ActionType.TAP: Tap,
            ActionType.DOUBLE_TAP: DoubleTap,
            ActionType.LONG_PRESS: LongPress,
        }[action_type]
        return factory(*point)

    if action_type == ActionType.SWIPE:
        start, end = params.get("start"), params.get("end")
        if not (isinstance(start, list) and isinstance(end, list)):
            return Error("Missing start or end for Swipe")
        if len(start) != 2 or len(end) != 2:
            return Error(f"Invalid coordinates for Swipe: {raw.get('start')} -> {raw.get('end')}")
        return Swipe(
            _to_pixels(start[0], screen_width),
            _to_pixels(start[1], screen_height),
            _to_pixels(end[0], screen_width),
            _to_pixels(end[1], screen_height),
        )

    if action_type in (ActionType.TYPE, ActionType.TYPE_NAME):
        text = params.get("text")
        if not isinstance(text, str):
            return Error("Missing text for Type")
        return TypeText(text)

    if action_type == ActionType.LAUNCH:
        app = params.get("app")
        if not isinstance(app, str) or not app.strip():
            return Error("Missing app name for Launch")
        return Launch(app.strip())

    if action_type == ActionType.BACK:
        return Back()

    if action_type == ActionType.HOME:
        return Home()

    if action_type == ActionType.WAIT:
        duration = params.get("duration")
        duration_ms = _parse_duration_ms(duration if isinstance(duration, str) else None)
        if duration_ms is None:
            return Error(f"Invalid duration for Wait: {raw.get('duration')}")
        return Wait(duration_ms)

    if action_type == ActionType.FINISH:
        message = params.get("message")
        return Finish(message if isinstance(message, str) else "")

    if action_type in _NOT_EXECUTABLE:
        return Unknown()

    return Error(f"Unhandled action type: {name}")


def parse_response(text: str, screen_width: int, screen_height: int) -> Action:
    """Parse a full response (reasoning plus call) into an executable action."""
    return parse_action(extract_action_string(text), screen_width, screen_height)


def _to_parsed_action(action_string: str) -> ParsedAction | None:
    clean = action_string.strip()

    finish_match = _FINISH_CALL.match(clean)
    if finish_match:
        message = finish_match.group(2)
        return ParsedAction(
            type=ActionType.FINISH,
            raw_params={"message": message},
            normalized_params={"message": message},
        )

    do_match = _DO_CALL.match(clean)
    if not do_match:
        return None

    raw, params = parse_action_params(do_match.group(1))
    name = raw.get("action")
    if name is None:
        return None
    return ParsedAction(
        type=ActionType.from_string(name),
        raw_params=raw,
        normalized_params=params,
    )


def parse_response_parts(text: str) -> tuple[str, ParsedAction | None]:
    """
    Split a response for display.

    Examples:
        'Thinking do(action="Tap", element=[500, 750])' -> ("Thinking", ParsedAction(TAP))
        'finish(message="Done")' -> ("", ParsedAction(FINISH))
        'No action here' -> ("No action here", None)
    """
    reasoning, action_string = split_response(text)
    if not action_string:
        return reasoning, None
    return reasoning, _to_parsed_action(action_string)
