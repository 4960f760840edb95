"""Widget exports for the teammate chat UI."""

from .conversation import ConversationView
from .message import MessageBubble
from .prompt_input import AttachmentStrip, Composer, PromptTextArea
from .status_bar import StatusBar

__all__ = [
    "AttachmentStrip",
    "Composer",
    "ConversationView",
    "MessageBubble",
    "PromptTextArea",
    "StatusBar",
]
