"""
飞书机器人工具模块
包含飞书API客户端、令牌管理、事件分发、消息处理、卡片与富文本构建等功能
"""

from .exceptions import (
    LarkException,
    ValidationException,
    AuthenticationException,
    LarkApiException
)
from .token_manager import TokenManager, MemoryTokenCache, FileTokenCache
from .lark_api import LarkApiClient
from .events import (
    LarkEvent,
    MessageEvent,
    MessageReactionEvent,
    UserEvent,
    GroupEvent,
    GroupMemberEvent,
    MenuEvent,
    GenericEvent,
    UrlVerificationEvent
)
from .event_dispatcher import EventDispatcher, AsyncEventHandler, AsyncEventMessage
from .message_handler import (
    MessageHandler,
    DefaultMessageHandler,
    CommandMessageHandler,
    MessageHandlerRegistry
)
from .card import CardElement, TextElement, ButtonElement, CardMessageBuilder, validate_card
from .message_builder import TextMessageBuilder, RichTextBuilder
from .webhook import WebhookEndpoint

__all__ = [
    'LarkException',
    'ValidationException',
    'AuthenticationException',
    'LarkApiException',
    'TokenManager',
    'MemoryTokenCache',
    'FileTokenCache',
    'LarkApiClient',
    'LarkEvent',
    'MessageEvent',
    'MessageReactionEvent',
    'UserEvent',
    'GroupEvent',
    'GroupMemberEvent',
    'MenuEvent',
    'GenericEvent',
    'UrlVerificationEvent',
    'EventDispatcher',
    'AsyncEventHandler',
    'AsyncEventMessage',
    'MessageHandler',
    'DefaultMessageHandler',
    'CommandMessageHandler',
    'MessageHandlerRegistry',
    'CardElement',
    'TextElement',
    'ButtonElement',
    'CardMessageBuilder',
    'validate_card',
    'TextMessageBuilder',
    'RichTextBuilder',
    'WebhookEndpoint',
]
