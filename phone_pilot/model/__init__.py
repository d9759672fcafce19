"""Model client and conversation history."""

from phone_pilot.model.client import MessageBuilder, ModelClient, ModelConfig
from phone_pilot.model.history import ConversationHistory

__all__ = ["ModelClient", "ModelConfig", "MessageBuilder", "ConversationHistory"]
