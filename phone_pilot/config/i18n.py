"""User-facing strings for status updates and console output."""

MESSAGES_ZH = {
    "thinking": "思考中",
    "action": "执行动作",
    "task_completed": "任务完成",
    "done": "完成",
    "prompt_date_prefix": "今天的日期是: ",
    "error": "出错了: {}",
    "error_screenshot_failed": "截图失败",
    "error_executor_null": "动作执行器不可用",
    "error_last_action_failed": "上一步操作执行失败，请检查当前屏幕并调整操作。",
    "error_max_steps": "已达到最大步数，任务终止",
    "error_runtime": "运行异常: {}",
    "task_stopped": "任务已停止",
    "action_tap": "点击",
    "action_tap_with_element": "点击 {}",
    "action_double_tap": "双击",
    "action_double_tap_with_element": "双击 {}",
    "action_long_press": "长按",
    "action_long_press_with_element": "长按 {}",
    "action_swipe": "滑动",
    "action_swipe_with_coordinates": "从 {} 滑动到 {}",
    "action_type": "输入文本",
    "action_type_with_text": "输入: {}",
    "action_type_name": "输入名称",
    "action_type_name_with_text": "输入名称: {}",
    "action_launch": "启动应用",
    "action_launch_with_app": "启动 {}",
    "action_back": "返回",
    "action_home": "回到桌面",
    "action_wait": "等待",
    "action_wait_with_duration": "等待 {}",
    "action_finish": "任务完成",
    "action_finish_with_message": "完成: {}",
    "action_take_over": "请求人工接管",
    "action_take_over_with_message": "请求人工接管: {}",
    "action_interact": "等待用户选择",
    "action_note": "记录页面内容",
    "action_call_api": "调用接口",
    "action_call_api_with_instruction": "调用接口: {}",
    "action_unknown": "未知操作 {}",
}

MESSAGES_EN = {
    "thinking": "Thinking",
    "action": "Action",
    "task_completed": "Task completed",
    "done": "Done",
    "prompt_date_prefix": "The current date: ",
    "error": "Error: {}",
    "error_screenshot_failed": "Screenshot failed",
    "error_executor_null": "Action executor is not available",
    "error_last_action_failed": "The last action failed. Check the current screen and adjust.",
    "error_max_steps": "Task terminated: maximum number of steps reached",
    "error_runtime": "Runtime error: {}",
    "task_stopped": "Task stopped",
    "action_tap": "Tap",
    "action_tap_with_element": "Tap {}",
    "action_double_tap": "Double tap",
    "action_double_tap_with_element": "Double tap {}",
    "action_long_press": "Long press",
    "action_long_press_with_element": "Long press {}",
    "action_swipe": "Swipe",
    "action_swipe_with_coordinates": "Swipe from {} to {}",
    "action_type": "Type text",
    "action_type_with_text": "Type: {}",
    "action_type_name": "Type name",
    "action_type_name_with_text": "Type name: {}",
    "action_launch": "Launch app",
    "action_launch_with_app": "Launch {}",
    "action_back": "Back",
    "action_home": "Home",
    "action_wait": "Wait",
    "action_wait_with_duration": "Wait {}",
    "action_finish": "Task completed",
    "action_finish_with_message": "Finished: {}",
    "action_take_over": "Take over requested",
    "action_take_over_with_message": "Take over requested: {}",
    "action_interact": "Waiting for user choice",
    "action_note": "Note page content",
    "action_call_api": "Call API",
    "action_call_api_with_instruction": "Call API: {}",
    "action_unknown": "Unknown action {}",
}


def get_messages(lang: str = "cn") -> dict[str, str]:
    """Get the message table for a language ('cn' or 'en')."""
    if lang == "en":
        return MESSAGES_EN
    return MESSAGES_ZH


def get_message(key: str, lang: str = "cn") -> str:
    """Get one message, falling back to the key itself."""
    return get_messages(lang).get(key, key)
