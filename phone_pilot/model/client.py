"""Model client for AI inference using OpenAI-compatible API."""

import base64
import json
import logging
import time
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any

from openai import OpenAI, OpenAIError
from PIL import Image

from phone_pilot.device.base import Model

logger = logging.getLogger(__name__)


@dataclass
class ModelConfig:
    """Configuration for the AI model."""

    base_url: str = "http://localhost:8000/v1"
    api_key: str = "EMPTY"
    model_name: str = "autoglm-phone-9b"
    max_tokens: int = 3000
    temperature: float = 0.0
    top_p: float = 0.85
    frequency_penalty: float = 0.2
    timeout: float = 60.0
    extra_body: dict[str, Any] = field(default_factory=dict)


class ModelClient(Model):
    """
    Client for interacting with OpenAI-compatible vision-language models.

    The screenshot is already embedded in the last user message of the
    history, so ``infer`` sends the history as is. Transport and API errors
    are returned as text starting with "Error" rather than raised.

    Args:
        config: Model configuration.
    """

    def __init__(self, config: ModelConfig | None = None, client: Any = None):
        self.config = config or ModelConfig()
        self.client = client or OpenAI(
            base_url=self.config.base_url,
            api_key=self.config.api_key,
            timeout=self.config.timeout,
        )

    def infer(self, history: list[dict[str, Any]], image: Image.Image | None) -> str:
        start_time = time.time()
        try:
            response = self.client.chat.completions.create(
                messages=history,
                model=self.config.model_name,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                top_p=self.config.top_p,
                frequency_penalty=self.config.frequency_penalty,
                extra_body=self.config.extra_body,
            )
        except OpenAIError as e:
            logger.warning("Model request failed: %s", e)
            return f"Error: {e}"

        total_time = time.time() - start_time
        logger.info("Model answered in %.3fs", total_time)

        if not response.choices:
            return "Error: empty response"
        content = response.choices[0].message.content
        if content is None:
            return "Error: empty response"
        return content


class MessageBuilder:
    """Helper class for building conversation messages."""

    @staticmethod
    def create_system_message(content: str) -> dict[str, Any]:
        """Create a system message."""
        return {"role": "system", "content": content}

    @staticmethod
    def create_user_message(
        text: str, image_base64: str | None = None
    ) -> dict[str, Any]:
        """
        Create a user message with optional image.

        Args:
            text: Text content.
            image_base64: Optional base64-encoded PNG.

        Returns:
            Message dictionary.
        """
        content = []

        if image_base64:
            content.append(
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:image/png;base64,{image_base64}"},
                }
            )

        content.append({"type": "text", "text": text})

        return {"role": "user", "content": content}

    @staticmethod
    def create_assistant_message(content: str) -> dict[str, Any]:
        """Create an assistant message."""
        return {"role": "assistant", "content": content}

    @staticmethod
    def remove_images_from_message(message: dict[str, Any]) -> dict[str, Any]:
        """
        Remove image content from a message to save context space.

        Args:
            message: Message dictionary.

        Returns:
            Message with images removed.
        """
        if isinstance(message.get("content"), list):
            message["content"] = [
                item for item in message["content"] if item.get("type") == "text"
            ]
        return message

    @staticmethod
    def has_image(message: dict[str, Any]) -> bool:
        content = message.get("content")
        return isinstance(content, list) and any(
            item.get("type") == "image_url" for item in content
        )

    @staticmethod
    def build_screen_info(current_app: str, **extra_info) -> str:
        """
        Build screen info string for the model.

        Args:
            current_app: Current app name.
            **extra_info: Additional info to include.

        Returns:
            JSON string with screen info.
        """
        info = {"current_app": current_app, **extra_info}
        return json.dumps(info, ensure_ascii=False)

    @staticmethod
    def image_to_base64(image: Image.Image) -> str:
        """Encode an image as base64 PNG."""
        buffered = BytesIO()
        image.save(buffered, format="PNG")
        return base64.b64encode(buffered.getvalue()).decode("utf-8")
