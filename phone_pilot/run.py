#!/usr/bin/env python3
"""
Phone Pilot 运行入口

使用示例:
    python -m phone_pilot.run "打开设置，查看 WLAN 列表"
    python -m phone_pilot.run --lang en --max-steps 10 "Open Settings"
"""

import argparse
import logging
import sys

from phone_pilot.agent import PilotAgent, TaskPhase
from phone_pilot.config.settings import get_settings
from phone_pilot.data import ImageStorage
from phone_pilot.device import ADBHelper, AdbDevice
from phone_pilot.model import ModelClient, ModelConfig
from phone_pilot.status import ConsoleStatus


def build_agent(settings) -> PilotAgent:
    """Wire the adb device, the model client and the stores from settings."""
    adb = ADBHelper(custom_adb_path=settings.adb_path or None, device_id=settings.device_id)
    if not adb.is_available():
        raise RuntimeError("ADB不可用，请安装 platform-tools 或在配置中指定 adb_path")

    device = AdbDevice(adb)
    model = ModelClient(
        ModelConfig(
            base_url=settings.api_base_url,
            api_key=settings.api_key or "EMPTY",
            model_name=settings.model_name,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            timeout=settings.request_timeout,
        )
    )
    return PilotAgent(
        device,
        device,
        model,
        status=ConsoleStatus(),
        image_store=ImageStorage(settings.resolved_image_dir()),
        config=settings.agent_config(),
        timings=settings.executor_timings(),
    )


def main(argv=None):
    parser = argparse.ArgumentParser(description="Phone Pilot - 视觉语言模型驱动的手机助手")
    parser.add_argument("task", help="任务描述")
    parser.add_argument("--max-steps", type=int, help="最大步数 (默认: 20)")
    parser.add_argument("--device-id", "-d", help="ADB 设备序列号")
    parser.add_argument("--lang", choices=["cn", "en"], help="提示词和状态语言")
    parser.add_argument("--config", "-c", help="配置文件路径 (.json / .yaml)")
    parser.add_argument("--verbose", "-v", action="store_true", help="输出详细日志")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = get_settings(args.config)
    if args.max_steps is not None:
        settings.max_steps = args.max_steps
    if args.device_id:
        settings.device_id = args.device_id
    if args.lang:
        settings.language = args.lang
    if args.verbose:
        settings.verbose = True

    try:
        agent = build_agent(settings)
    except RuntimeError as e:
        print(f"初始化失败: {e}", file=sys.stderr)
        return 2

    print(f"\n开始执行任务: {args.task}\n")
    result = agent.run(args.task)

    print("\n" + "=" * 50)
    print("执行结果")
    print("=" * 50)
    print(f"任务: {result.task}")
    print(f"结果: {result.phase.value}")
    print(f"消息: {result.message}")
    print(f"总步数: {result.steps}")
    print(f"耗时: {result.elapsed_seconds:.1f}秒")

    return 0 if result.phase is TaskPhase.FINISHED else 1


if __name__ == "__main__":
    sys.exit(main())
