from openlark.service.im.v1.message import (
    ImageMessage,
    Message,
    MessageCardTemplate,
    MessageService,
    PostMessage,
    SendMessage,
    ShareChatMessage,
    TextMessage,
)

__all__ = [
    "ImageMessage",
    "Message",
    "MessageCardTemplate",
    "MessageService",
    "PostMessage",
    "SendMessage",
    "ShareChatMessage",
    "TextMessage",
]
