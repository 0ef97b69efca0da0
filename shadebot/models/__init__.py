from shadebot.models.conversation import Conversation

__all__ = ["Conversation"]
