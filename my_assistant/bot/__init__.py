"""Chat bot package wrappers."""

from .config import BotConfig
from .core import AssistantBot
from .flows import FlowController
from .gateway import InboundEvent, TelegramGateway
from .router import CommandRouter
from .state import ConversationStateStore
from .visualization import VisualizationService

__all__ = [
    "AssistantBot",
    "BotConfig",
    "CommandRouter",
    "ConversationStateStore",
    "FlowController",
    "InboundEvent",
    "TelegramGateway",
    "VisualizationService",
]
