#!/usr/bin/env python3
"""
消息处理器模块
消息事件由 MessageHandlerRegistry 按优先级交给第一个能处理的处理器
"""

import logging

from .bot_msg_format import GROUP_GREETING, HELP_TEXT, PRIVATE_GREETING
from .card import CardMessageBuilder

logger = logging.getLogger(__name__)


class MessageHandler:
    """消息处理器基类"""

    priority = 0
    name = None

    def __init__(self, lark_client=None):
        """
        Args:
            lark_client: 飞书API客户端，用于回复消息
        """
        self._lark_client = lark_client

    def supports(self, event):
        """是否支持处理该消息"""
        raise NotImplementedError

    def handle(self, event):
        """处理消息"""
        raise NotImplementedError

    def get_name(self):
        return self.name or type(self).__name__

    def reply_text(self, event, text):
        """回复文本消息，失败只记录日志"""
        return self._reply(event, "text", {"text": text})

    def reply_card(self, event, card):
        """回复卡片消息，失败只记录日志"""
        return self._reply(event, "interactive", card)

    def _reply(self, event, msg_type, content):
        if self._lark_client is None:
            logger.warning("[%s] 未配置飞书客户端，无法回复消息 %s", self.get_name(), event.message_id)
            return False
        try:
            self._lark_client.reply_message(event.message_id, msg_type, content)
            return True
        except Exception as e:
            logger.error("[%s] 回复消息失败: chat_id=%s, message_id=%s, error=%s",
                         self.get_name(), event.chat_id, event.message_id, e, exc_info=True)
            return False


class DefaultMessageHandler(MessageHandler):
    """默认消息处理器，处理未被其他处理器处理的消息"""

    priority = -1000
    name = "default"

    def __init__(self, lark_client=None, bot_open_id=""):
        super().__init__(lark_client)
        self._bot_open_id = bot_open_id

    def supports(self, event):
        return True

    def handle(self, event):
        logger.info("[%s] 收到消息: message_id=%s, chat_id=%s, sender_id=%s, message_type=%s",
                    self.get_name(), event.message_id, event.chat_id,
                    event.sender_id, event.message_type)

        if event.is_private_message():
            self.reply_text(event, PRIVATE_GREETING)
        elif event.is_group_message() and event.is_mentioned_bot(self._bot_open_id):
            self.reply_text(event, GROUP_GREETING)


class CommandMessageHandler(MessageHandler):
    """
    命令消息处理器
    支持 help / myuid / groupid 命令，以卡片消息引用回复
    """

    priority = 0
    name = "command"

    COMMANDS = ("help", "myuid", "groupid")

    def supports(self, event):
        return self.parse_command(event) in self.COMMANDS

    @staticmethod
    def parse_command(event):
        """
        解析命令（去除@内容后取第一个单词）

        Returns:
            str | None: 小写命令，无法解析时返回None
        """
        command_text = event.plain_text.strip()
        for mention in event.mentions:
            mention_key = mention.get("key", "")
            if mention_key:
                command_text = command_text.replace(mention_key, "").strip()

        parts = command_text.split()
        if not parts:
            return None
        return parts[0].lower()

    def handle(self, event):
        command = self.parse_command(event)
        sender_id = event.sender_id

        if command == "myuid":
            if sender_id:
                uid_text = f"**您的用户ID：**\n{sender_id}"
            else:
                uid_text = "**提示：** 抱歉，无法获取您的用户ID"
            card = (CardMessageBuilder("🆔 用户信息", template="green")
                    .add_text(uid_text, as_markdown=True)
                    .build())

        elif command == "groupid":
            if not event.is_group_message():
                card = (CardMessageBuilder("⚠️ 提示", template="yellow")
                        .add_text("**此命令仅在群聊中可用**", as_markdown=True)
                        .build())
                logger.info(f"用户 {sender_id} 在非群聊环境中使用groupid命令")
            else:
                card = (CardMessageBuilder("🆔 群组信息", template="green")
                        .add_text(f"**群组ID：**\n{event.chat_id}", as_markdown=True)
                        .build())

        else:
            card = (CardMessageBuilder("📖 可用命令列表", template="blue")
                    .add_text(HELP_TEXT, as_markdown=True)
                    .build())

        self.reply_card(event, card)
        logger.info(f"已回复{command}命令给用户 {sender_id}")


class MessageHandlerRegistry:
    """
    消息处理器注册表
    处理器按优先级降序执行（同优先级按注册顺序），第一个成功处理消息的处理器结束本轮分发；
    处理器抛出异常时记录日志并继续尝试后续处理器
    """

    def __init__(self, handlers=()):
        self._handlers = []
        self._sorted = None
        for handler in handlers:
            self.add_handler(handler)

    def add_handler(self, handler):
        """注册消息处理器"""
        self._handlers.append(handler)
        self._sorted = None
        logger.debug("注册消息处理器: %s, priority=%s", handler.get_name(), handler.priority)

    def remove_handler(self, handler):
        """移除消息处理器"""
        self._handlers = [h for h in self._handlers if h is not handler]
        self._sorted = None

    def clear(self):
        self._handlers = []
        self._sorted = None

    def count(self):
        return len(self._handlers)

    __len__ = count

    def get_handlers(self):
        """获取按优先级排序后的处理器列表"""
        return list(self._sorted_handlers())

    def handle_message(self, event):
        """
        处理消息事件

        Returns:
            MessageHandler | None: 处理了该消息的处理器
        """
        for handler in self._sorted_handlers():
            try:
                if not handler.supports(event):
                    continue
                logger.debug("执行消息处理器: %s, message_id=%s", handler.get_name(), event.message_id)
                handler.handle(event)
            except Exception as e:
                logger.error("消息处理器执行失败: handler=%s, error=%s",
                             handler.get_name(), e, exc_info=True)
                continue
            return handler

        logger.warning("没有处理器处理该消息: message_id=%s, message_type=%s",
                       event.message_id, event.message_type)
        return None

    def _sorted_handlers(self):
        if self._sorted is None:
            self._sorted = sorted(self._handlers, key=lambda h: h.priority, reverse=True)
        return self._sorted
