"""
ADB工具辅助模块
Android device driven over adb: gestures via ``input``, launches via
``monkey`` and screenshots via ``exec-out screencap``.
"""
import logging
import os
import re
import shutil
import subprocess
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image

from phone_pilot.config.apps import get_package_name
from phone_pilot.device.base import Capture, Device

logger = logging.getLogger(__name__)

PNG_HEADER = b"\x89PNG\r\n\x1a\n"


class ADBHelper:
    """ADB工具辅助类"""

    def __init__(self, custom_adb_path: str = None, device_id: Optional[str] = None):
        self.custom_adb_path = custom_adb_path
        self.device_id = device_id
        self._adb_path = None

    def get_adb_path(self) -> str:
        """获取ADB可执行文件路径"""
        if self._adb_path:
            return self._adb_path

        # 优先使用自定义路径
        if self.custom_adb_path and os.path.exists(self.custom_adb_path):
            self._adb_path = self.custom_adb_path
            return self._adb_path

        found = shutil.which("adb")
        if found:
            self._adb_path = found
            return self._adb_path

        return ""

    def is_available(self) -> bool:
        """检查ADB是否可用"""
        success, _ = self.run_command(["version"], timeout=5, scoped=False)
        return success

    def _prefix(self, scoped: bool) -> list:
        prefix = [self.get_adb_path()]
        if scoped and self.device_id:
            prefix += ["-s", self.device_id]
        return prefix

    def run_command(self, args: list, timeout: int = 30, scoped: bool = True) -> Tuple[bool, str]:
        """运行ADB命令"""
        if not self.get_adb_path():
            return False, "ADB不可用"

        try:
            result = subprocess.run(
                self._prefix(scoped) + args,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
            )
            if result.returncode == 0:
                return True, result.stdout.strip()
            return False, result.stderr.strip() or result.stdout.strip()
        except subprocess.TimeoutExpired:
            return False, "命令执行超时"
        except OSError as e:
            return False, str(e)

    def run_binary(self, args: list, timeout: float = 10) -> Optional[bytes]:
        """Run a command whose stdout is binary (e.g. a PNG)."""
        if not self.get_adb_path():
            return None
        try:
            result = subprocess.run(
                self._prefix(True) + args,
                capture_output=True,
                timeout=timeout,
            )
        except (subprocess.TimeoutExpired, OSError) as e:
            logger.warning("adb %s failed: %s", " ".join(args), e)
            return None
        if result.returncode != 0:
            logger.warning(
                "adb %s failed: %s",
                " ".join(args),
                result.stderr.decode("utf-8", errors="replace").strip(),
            )
            return None
        return result.stdout


def escape_input_text(text: str) -> str:
    """Escape text for ``adb shell input text``."""
    escaped = text.replace("\\", "\\\\")
    for char in "&<>()|;*'\"":
        escaped = escaped.replace(char, "\\" + char)
    return escaped.replace(" ", "%s")


class AdbDevice(Device, Capture):
    """
    Device and capture source backed by adb.

    Args:
        adb: Helper bound to the target device.
        host_package: Package of the app controlling the agent, if any; used
            to tell whether it is in the foreground.
    """

    def __init__(self, adb: Optional[ADBHelper] = None, host_package: Optional[str] = None):
        self.adb = adb or ADBHelper()
        self.host_package = host_package
        self._size: Optional[Tuple[int, int]] = None

    def _shell(self, *args: str) -> bool:
        success, output = self.adb.run_command(["shell", *args])
        if not success:
            logger.warning("adb shell %s failed: %s", " ".join(args), output)
        return success

    def tap(self, x: int, y: int) -> bool:
        return self._shell("input", "tap", str(x), str(y))

    def swipe(self, x1: int, y1: int, x2: int, y2: int, duration_ms: int = 500) -> bool:
        return self._shell(
            "input", "swipe", str(x1), str(y1), str(x2), str(y2), str(duration_ms)
        )

    def global_back(self) -> bool:
        return self._shell("input", "keyevent", "4")  # KEYCODE_BACK

    def global_home(self) -> bool:
        return self._shell("input", "keyevent", "3")  # KEYCODE_HOME

    def type_text(self, text: str) -> bool:
        if not text:
            return True
        return self._shell("input", "text", escape_input_text(text))

    def resolve_and_launch(self, app: str) -> bool:
        package = get_package_name(app)
        if not package:
            logger.warning("Cannot resolve app %r to a package", app)
            return False
        installed, _ = self.adb.run_command(["shell", "pm", "path", package])
        if not installed:
            logger.warning("Package %s is not installed", package)
            return False
        return self._shell(
            "monkey", "-p", package, "-c", "android.intent.category.LAUNCHER", "1"
        )

    def _screen_size(self) -> Tuple[int, int]:
        if self._size is None:
            success, output = self.adb.run_command(["shell", "wm", "size"])
            # "Physical size: 1080x2400", possibly followed by "Override size: ..."
            sizes = re.findall(r"(\d+)x(\d+)", output) if success else []
            if sizes:
                width, height = sizes[-1]
                self._size = (int(width), int(height))
            else:
                logger.warning("Could not read screen size, assuming 1080x2400")
                self._size = (1080, 2400)
        return self._size

    def screen_width(self) -> int:
        return self._screen_size()[0]

    def screen_height(self) -> int:
        return self._screen_size()[1]

    def current_app(self) -> str:
        success, output = self.adb.run_command(["shell", "dumpsys", "window"])
        if not success:
            return "Unknown"
        for line in output.splitlines():
            if "mCurrentFocus" in line or "mFocusedApp" in line:
                match = re.search(r"([\w.]+)/[\w.$]+", line)
                if match:
                    return match.group(1)
        return "Unknown"

    def is_host_foreground(self) -> bool:
        return bool(self.host_package) and self.current_app() == self.host_package

    def capture(self, timeout: float) -> Optional[Image.Image]:
        data = self.adb.run_binary(["exec-out", "screencap", "-p"], timeout=timeout)
        if not data or data[:8] != PNG_HEADER:
            return None
        try:
            image = Image.open(BytesIO(data))
            image.load()
        except (OSError, ValueError) as e:
            logger.warning("Screenshot could not be decoded: %s", e)
            return None
        self._size = image.size
        return image
