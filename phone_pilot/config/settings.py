"""
配置管理模块
Settings for the model endpoint, the device and the task loop, persisted as
JSON (or YAML when the file ends in .yaml/.yml).
"""
import json
import os
from dataclasses import asdict, dataclass
from typing import Optional

import yaml

ENV_OVERRIDES = {
    "PHONE_PILOT_API_KEY": "api_key",
    "PHONE_PILOT_BASE_URL": "api_base_url",
    "PHONE_PILOT_MODEL": "model_name",
}


def get_user_data_path() -> str:
    """Directory for writable data (config, saved screenshots)."""
    return os.environ.get(
        "PHONE_PILOT_HOME", os.path.join(os.path.expanduser("~"), ".phone_pilot")
    )


@dataclass
class Settings:
    """应用配置"""
    # 模型API配置
    api_base_url: str = "https://open.bigmodel.cn/api/paas/v4"
    api_key: str = ""
    model_name: str = "autoglm-phone"
    max_tokens: int = 3000
    temperature: float = 0.1
    request_timeout: float = 60.0

    # 设备配置
    device_id: Optional[str] = None
    adb_path: str = ""

    # 执行配置
    max_steps: int = 20
    settle_ms: int = 1000
    double_tap_interval_ms: int = 150
    launch_settle_ms: int = 2000
    step_delay_ms: int = 2000
    capture_timeout_ms: int = 5000
    language: str = "cn"
    verbose: bool = True

    # 截图保存目录，为空时使用用户数据目录
    image_dir: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        # 过滤掉不存在的字段
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered_data = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered_data)

    def resolved_image_dir(self) -> str:
        return self.image_dir or os.path.join(get_user_data_path(), "conversation_images")

    def executor_timings(self):
        from phone_pilot.actions.executor import ExecutorTimings

        return ExecutorTimings(
            settle_ms=self.settle_ms,
            double_tap_interval_ms=self.double_tap_interval_ms,
            launch_settle_ms=self.launch_settle_ms,
        )

    def agent_config(self):
        from phone_pilot.agent import AgentConfig

        return AgentConfig(
            max_steps=self.max_steps,
            step_delay_ms=self.step_delay_ms,
            capture_timeout_ms=self.capture_timeout_ms,
            lang=self.language,
            verbose=self.verbose,
        )


def get_config_path() -> str:
    """获取配置文件路径"""
    config_dir = os.path.join(get_user_data_path(), "config")
    os.makedirs(config_dir, exist_ok=True)
    return os.path.join(config_dir, "settings.json")


def _is_yaml(path: str) -> bool:
    return path.lower().endswith((".yaml", ".yml"))


def _apply_env(settings: Settings) -> Settings:
    for env_name, field_name in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            setattr(settings, field_name, value)
    return settings


def get_settings(path: Optional[str] = None) -> Settings:
    """加载设置; a missing or unreadable file yields the defaults."""
    config_path = path or get_config_path()
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            if _is_yaml(config_path):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)
        settings = Settings.from_dict(data)
    except (FileNotFoundError, json.JSONDecodeError, yaml.YAMLError):
        settings = Settings()
    return _apply_env(settings)


def save_settings(settings: Settings, path: Optional[str] = None):
    """保存设置"""
    config_path = path or get_config_path()
    with open(config_path, "w", encoding="utf-8") as f:
        if _is_yaml(config_path):
            yaml.safe_dump(settings.to_dict(), f, allow_unicode=True, sort_keys=False)
        else:
            json.dump(settings.to_dict(), f, ensure_ascii=False, indent=2)
