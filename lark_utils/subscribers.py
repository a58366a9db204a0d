#!/usr/bin/env python3
"""
事件订阅器
把分发器中的具体事件转交给消息处理器、菜单处理函数和进群欢迎逻辑
"""

import logging

from .bot_msg_format import bot_add_msg_to_group, user_add_msg_to_group
from .events import GroupMemberEvent, MenuEvent, MessageEvent, UrlVerificationEvent

logger = logging.getLogger(__name__)


class MessageEventSubscriber:
    """消息事件订阅器，将消息事件转发给消息处理器注册表"""

    PRIORITY = 100

    def __init__(self, handler_registry):
        self._handler_registry = handler_registry

    def subscribe(self, dispatcher):
        dispatcher.add_listener(MessageEvent, self.on_message, self.PRIORITY)

    def on_message(self, event):
        logger.info("收到消息事件: message_id=%s, chat_id=%s, sender_id=%s, message_type=%s",
                    event.message_id, event.chat_id, event.sender_id, event.message_type)
        self._handler_registry.handle_message(event)


class MenuRouter:
    """机器人菜单路由，按菜单项的 event_key 调用对应处理函数"""

    def __init__(self):
        self._handlers = {}

    def register(self, event_key, handler):
        """
        注册菜单处理函数

        Args:
            event_key: 菜单项配置的事件键值
            handler: 处理函数，参数为 MenuEvent
        """
        self._handlers[event_key] = handler

    def has_handler(self, event_key):
        return event_key in self._handlers

    def handle(self, event):
        """
        处理菜单事件

        Returns:
            bool: 是否找到处理函数
        """
        handler = self._handlers.get(event.event_key)
        if handler is None:
            logger.warning("未找到菜单处理器: event_key=%s", event.event_key)
            return False

        logger.info("处理菜单事件: event_key=%s, user_id=%s", event.event_key, event.operator_open_id)
        handler(event)
        return True


class MenuEventSubscriber:
    """菜单事件订阅器"""

    PRIORITY = 10

    def __init__(self, menu_router):
        self._menu_router = menu_router

    def subscribe(self, dispatcher):
        dispatcher.add_listener(MenuEvent, self.on_menu_event, self.PRIORITY)

    def on_menu_event(self, event):
        logger.debug("收到菜单事件: event_key=%s, operator_id=%s, event_id=%s",
                     event.event_key, event.operator_open_id, event.event_id)
        try:
            self._menu_router.handle(event)
        except Exception as e:
            logger.error("处理菜单事件时发生异常: event_key=%s, error=%s",
                         event.event_key, e, exc_info=True)


class GroupMemberEventSubscriber:
    """群成员事件订阅器，机器人或用户进群时发送打招呼消息"""

    PRIORITY = 0

    def __init__(self, lark_client):
        self._lark_client = lark_client

    def subscribe(self, dispatcher):
        dispatcher.add_listener(GroupMemberEvent, self.on_group_member_event, self.PRIORITY)

    def on_group_member_event(self, event):
        if event.is_bot_added():
            welcome_text = bot_add_msg_to_group(event)
        elif event.is_user_added():
            welcome_text = user_add_msg_to_group(event)
        else:
            logger.debug("忽略群成员事件: %s", event.event_type)
            return

        if not event.chat_id:
            logger.warning("群成员事件中没有chat_id: %s", event.event_type)
            return

        try:
            self._lark_client.send_text("chat_id", event.chat_id, welcome_text)
            logger.info("✅ 已向群聊 %s 发送打招呼消息", event.chat_id)
        except Exception as e:
            logger.error("发送进群打招呼消息失败: %s", e, exc_info=True)


def log_url_verification(event):
    """URL验证事件监听器"""
    logger.info("✅ URL验证请求，challenge: %s", event.challenge)


def subscribe_url_verification(dispatcher):
    dispatcher.add_listener(UrlVerificationEvent, log_url_verification)
