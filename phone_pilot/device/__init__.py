# Device Module
from .adb import ADBHelper, AdbDevice
from .base import (
    AssistantState,
    Capture,
    Device,
    ImageStore,
    Model,
    StatusSink,
    TaskEndState,
)
from .overlay import GuardedCapture, GuardedDevice, Overlay, OverlayGuard

__all__ = [
    "ADBHelper",
    "AdbDevice",
    "AssistantState",
    "Capture",
    "Device",
    "ImageStore",
    "Model",
    "StatusSink",
    "TaskEndState",
    "Overlay",
    "OverlayGuard",
    "GuardedDevice",
    "GuardedCapture",
]
