"""Action vocabulary: executable actions and their display projection."""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from pydantic import BaseModel, Field, model_validator


class ActionType(str, Enum):
    """Every action name the model vocabulary knows about."""

    TAP = "tap"
    DOUBLE_TAP = "double_tap"
    LONG_PRESS = "long_press"
    SWIPE = "swipe"
    TYPE = "type"
    TYPE_NAME = "type_name"
    LAUNCH = "launch"
    BACK = "back"
    HOME = "home"
    WAIT = "wait"
    FINISH = "finish"
    TAKE_OVER = "take_over"
    INTERACT = "interact"
    NOTE = "note"
    CALL_API = "call_api"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, action: str | None) -> "ActionType":
        """
        Look up an action name as the model writes it.

        Matching ignores case, spaces, hyphens and underscores, so
        "Double Tap", "double_tap" and "DOUBLE-TAP" are all DOUBLE_TAP.

        Args:
            action: Action name from the model response.

        Returns:
            The matching ActionType, or UNKNOWN.
        """
        if not action or not action.strip():
            return cls.UNKNOWN
        return _TYPE_MAP.get(_normalize_name(action), cls.UNKNOWN)


def _normalize_name(name: str) -> str:
    return name.strip().lower().replace(" ", "").replace("_", "").replace("-", "")


_TYPE_MAP = {_normalize_name(t.name): t for t in ActionType}


# Executable actions. Coordinates are absolute device pixels.


@dataclass(frozen=True)
class Tap:
    x: int
    y: int


@dataclass(frozen=True)
class DoubleTap:
    x: int
    y: int


@dataclass(frozen=True)
class LongPress:
    x: int
    y: int


@dataclass(frozen=True)
class Swipe:
    start_x: int
    start_y: int
    end_x: int
    end_y: int


@dataclass(frozen=True)
class TypeText:
    text: str


@dataclass(frozen=True)
class Launch:
    app: str


@dataclass(frozen=True)
class Back:
    pass


@dataclass(frozen=True)
class Home:
    pass


@dataclass(frozen=True)
class Wait:
    duration_ms: int


@dataclass(frozen=True)
class Finish:
    message: str


@dataclass(frozen=True)
class Error:
    """The response could not be turned into an executable action."""

    reason: str


@dataclass(frozen=True)
class Unknown:
    pass


Action = Union[
    Tap, DoubleTap, LongPress, Swipe, TypeText, Launch,
    Back, Home, Wait, Finish, Error, Unknown,
]

_ACTION_TYPES = {
    Tap: ActionType.TAP,
    DoubleTap: ActionType.DOUBLE_TAP,
    LongPress: ActionType.LONG_PRESS,
    Swipe: ActionType.SWIPE,
    TypeText: ActionType.TYPE,
    Launch: ActionType.LAUNCH,
    Back: ActionType.BACK,
    Home: ActionType.HOME,
    Wait: ActionType.WAIT,
    Finish: ActionType.FINISH,
    Error: ActionType.UNKNOWN,
    Unknown: ActionType.UNKNOWN,
}


def action_type_of(action: Action) -> ActionType:
    """Map an executable action back to its vocabulary entry."""
    try:
        return _ACTION_TYPES[type(action)]
    except KeyError:
        raise TypeError(f"not an action: {action!r}") from None


class ParsedAction(BaseModel):
    """
    Display projection of an action string.

    Unlike :data:`Action` it keeps parameters as the model wrote them, so the
    UI and logs can show "element=[500, 750]" rather than pixel coordinates.

    Attributes:
        type: Action type looked up from the ``action`` parameter.
        raw_params: Parameter values as strings (lists re-rendered, e.g. "[500, 750]").
        normalized_params: Strings as-is, number lists as lists of floats.
    """

    type: ActionType
    raw_params: dict[str, str] = Field(default_factory=dict)
    normalized_params: dict[str, Union[str, list[float]]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_params(self):
        missing = set(self.normalized_params) - set(self.raw_params)
        if missing:
            raise ValueError(f"normalized params without raw value: {sorted(missing)}")
        return self

    def get_param(self, key: str) -> str | None:
        return self.raw_params.get(key)

    def has_param(self, key: str) -> bool:
        return key in self.raw_params or key in self.normalized_params
