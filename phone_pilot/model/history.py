"""Conversation history of one task."""

import copy
from typing import Any

from PIL import Image

from phone_pilot.model.client import MessageBuilder

ROLES = ("system", "user", "assistant")


class ConversationHistory:
    """
    Ordered chat messages sent to the model at every step.

    Starts empty; :meth:`reset` seeds it with the system prompt when a task
    begins. Only the task loop mutates it.
    """

    def __init__(self):
        self._messages: list[dict[str, Any]] = []

    def reset(self, system_prompt: str) -> None:
        self._messages = [MessageBuilder.create_system_message(system_prompt)]

    def add_message(self, message: dict[str, Any]) -> None:
        role = message.get("role")
        if role not in ROLES:
            raise ValueError(f"invalid message role: {role!r}")
        if role == "system" and any(m["role"] == "system" for m in self._messages):
            raise ValueError("history already has a system message")
        self._messages.append(message)

    def add_user(self, text: str, image: Image.Image | None = None) -> dict[str, Any]:
        image_base64 = MessageBuilder.image_to_base64(image) if image is not None else None
        message = MessageBuilder.create_user_message(text, image_base64)
        self.add_message(message)
        return message

    def add_assistant(self, text: str) -> dict[str, Any]:
        message = MessageBuilder.create_assistant_message(text)
        self.add_message(message)
        return message

    def trim_images(self) -> int:
        """
        Strip image parts from user messages already answered by the model.

        Every user message before the latest assistant message loses its
        images and keeps its text. Later user messages (the pending prompt)
        are left alone.

        Returns:
            Number of messages that changed.
        """
        last_assistant = -1
        for i, message in enumerate(self._messages):
            if message["role"] == "assistant":
                last_assistant = i

        trimmed = 0
        for message in self._messages[:last_assistant]:
            if message["role"] == "user" and MessageBuilder.has_image(message):
                MessageBuilder.remove_images_from_message(message)
                trimmed += 1
        return trimmed

    def count_images(self) -> int:
        return sum(1 for m in self._messages if MessageBuilder.has_image(m))

    def messages(self) -> list[dict[str, Any]]:
        """Snapshot of the messages, safe to hand to another thread."""
        return copy.deepcopy(self._messages)

    def __len__(self) -> int:
        return len(self._messages)
