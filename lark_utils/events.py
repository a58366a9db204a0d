#!/usr/bin/env python3
"""
飞书事件对象
每个事件携带事件类型、事件数据（payload）和上下文（event_id/tenant_key/app_id），构造后只读
"""

import json
import time
from types import MappingProxyType


class LarkEvent:
    """飞书事件基类"""

    __slots__ = ("_event_type", "_payload", "_context")

    def __init__(self, event_type, payload, context=None):
        """
        Args:
            event_type: 事件类型，如 im.message.receive_v1
            payload: 事件数据（请求体中的event字段）
            context: 上下文信息，包含 event_id、tenant_key、app_id
        """
        if not isinstance(payload, dict):
            raise TypeError(f"事件数据必须是dict，实际为 {type(payload).__name__}")
        object.__setattr__(self, "_event_type", event_type)
        object.__setattr__(self, "_payload", MappingProxyType(dict(payload)))
        object.__setattr__(self, "_context", MappingProxyType(dict(context or {})))

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} 是只读对象")

    def __repr__(self):
        return f"{type(self).__name__}(event_type={self._event_type!r}, event_id={self.event_id!r})"

    @property
    def event_type(self):
        return self._event_type

    @property
    def payload(self):
        return self._payload

    @property
    def context(self):
        return self._context

    @property
    def event_id(self):
        return self._str_from(self._context, "event_id")

    @property
    def tenant_key(self):
        return self._str_from(self._context, "tenant_key")

    @property
    def app_id(self):
        return self._str_from(self._context, "app_id")

    @property
    def timestamp(self):
        """事件创建时间，payload中没有create_time时取当前时间"""
        create_time = self._payload.get("create_time")
        try:
            return int(create_time)
        except (TypeError, ValueError):
            return int(time.time())

    @property
    def is_retry(self):
        return bool(self._context.get("is_retry", False))

    def _str(self, key):
        return self._str_from(self._payload, key)

    @staticmethod
    def _str_from(mapping, key):
        value = mapping.get(key, "")
        return value if isinstance(value, str) else ""

    @staticmethod
    def _dict_list(value):
        """列表字段中的dict元素，字段不是列表时返回空列表"""
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]


class MessageEvent(LarkEvent):
    """消息事件"""

    __slots__ = ()

    @property
    def message(self):
        """
        消息体
        v2事件把消息字段放在 message 下，兼容直接平铺在payload中的写法
        """
        message = self._payload.get("message")
        return message if isinstance(message, dict) else self._payload

    def _message_str(self, key):
        return self._str_from(self.message, key)

    @property
    def message_id(self):
        return self._message_str("message_id")

    @property
    def root_id(self):
        return self._message_str("root_id")

    @property
    def parent_id(self):
        return self._message_str("parent_id")

    @property
    def chat_id(self):
        return self._message_str("chat_id")

    @property
    def chat_type(self):
        return self._message_str("chat_type")

    @property
    def message_type(self):
        return self._message_str("message_type")

    @property
    def content(self):
        return self._message_str("content")

    @property
    def mentions(self):
        return self._dict_list(self.message.get("mentions"))

    @property
    def sender(self):
        sender = self._payload.get("sender")
        sender = dict(sender) if isinstance(sender, dict) else {}
        if not isinstance(sender.get("sender_id"), dict):
            sender["sender_id"] = {"union_id": "", "user_id": "", "open_id": ""}
        if not isinstance(sender.get("sender_type"), str):
            sender["sender_type"] = "user"
        if not isinstance(sender.get("tenant_key"), str):
            sender["tenant_key"] = ""
        return sender

    @property
    def sender_id(self):
        return self._str_from(self.sender["sender_id"], "open_id")

    @property
    def sender_type(self):
        return self.sender["sender_type"]

    def is_group_message(self):
        return self.chat_type in ("group", "supergroup")

    def is_private_message(self):
        return self.chat_type == "p2p"

    def is_mentioned_bot(self, bot_open_id=""):
        """
        是否@了机器人

        Args:
            bot_open_id: 机器人open_id；为空时任意@（含@所有人）都视为@了机器人
        """
        for mention in self.mentions:
            mention_id = mention.get("id")
            open_id = mention_id.get("open_id", "") if isinstance(mention_id, dict) else ""
            if open_id == "@_all":
                return True
            if not bot_open_id or open_id == bot_open_id:
                return True
        return False

    @property
    def plain_text(self):
        """纯文本内容，非文本消息返回空串，内容不是JSON时原样返回"""
        if self.message_type != "text":
            return ""
        content = self.content
        try:
            data = json.loads(content)
        except ValueError:
            return content
        if not isinstance(data, dict):
            return content
        text = data.get("text", "")
        return text if isinstance(text, str) else ""


class MessageReactionEvent(LarkEvent):
    """消息表情回复事件"""

    __slots__ = ()

    @property
    def message_id(self):
        return self._str("message_id")

    @property
    def reaction_type(self):
        reaction_type = self._payload.get("reaction_type")
        return reaction_type if isinstance(reaction_type, dict) else {}

    @property
    def emoji_type(self):
        return self._str_from(self.reaction_type, "emoji_type")

    @property
    def operator_id(self):
        user_id = self._payload.get("user_id")
        if isinstance(user_id, dict):
            return self._str_from(user_id, "open_id")
        return self._str("operator_id")

    @property
    def action_time(self):
        return self._str("action_time")

    def is_created(self):
        return self._event_type == "im.message.reaction.created_v1"

    def is_deleted(self):
        return self._event_type == "im.message.reaction.deleted_v1"


class UserEvent(LarkEvent):
    """通讯录用户事件"""

    __slots__ = ()

    @property
    def user(self):
        """用户信息，v3事件位于 object 字段"""
        obj = self._payload.get("object")
        return obj if isinstance(obj, dict) else self._payload

    @property
    def user_id(self):
        return self._str_from(self.user, "user_id")

    @property
    def open_id(self):
        return self._str_from(self.user, "open_id")

    @property
    def union_id(self):
        return self._str_from(self.user, "union_id")

    @property
    def name(self):
        return self._str_from(self.user, "name")

    @property
    def email(self):
        return self._str_from(self.user, "email")

    @property
    def mobile(self):
        return self._str_from(self.user, "mobile")

    @property
    def department_ids(self):
        department_ids = self.user.get("department_ids")
        if not isinstance(department_ids, list):
            return []
        return [d for d in department_ids if isinstance(d, str)]

    def is_created(self):
        return self._event_type == "contact.user.created_v3"

    def is_updated(self):
        return self._event_type == "contact.user.updated_v3"

    def is_deleted(self):
        return self._event_type == "contact.user.deleted_v3"


class GroupEvent(LarkEvent):
    """群组事件"""

    __slots__ = ()

    @property
    def chat_id(self):
        return self._str("chat_id")

    @property
    def operator_id(self):
        operator_id = self._payload.get("operator_id")
        if isinstance(operator_id, dict):
            return self._str_from(operator_id, "open_id")
        return self._str("operator_id")

    @property
    def external_label(self):
        return self._str("external_label")

    @property
    def i18n_names(self):
        names = self._payload.get("i18n_names")
        if not isinstance(names, dict):
            return {}
        return {k: v for k, v in names.items() if isinstance(v, str)}

    def is_disbanded(self):
        return self._event_type == "im.chat.disbanded_v1"

    def is_updated(self):
        return self._event_type == "im.chat.updated_v1"


class GroupMemberEvent(LarkEvent):
    """群成员事件（机器人/用户进群、退群）"""

    __slots__ = ()

    @property
    def chat_id(self):
        return self._str("chat_id")

    @property
    def name(self):
        """群名称，飞书事件中可能是name或chat_name"""
        return self._str("name") or self._str("chat_name")

    @property
    def operator_id(self):
        operator_id = self._payload.get("operator_id")
        if isinstance(operator_id, dict):
            return self._str_from(operator_id, "open_id")
        return self._str("operator_id")

    @property
    def users(self):
        return self._dict_list(self._payload.get("users"))

    def is_bot_added(self):
        return self._event_type == "im.chat.member.bot.added_v1"

    def is_bot_deleted(self):
        return self._event_type == "im.chat.member.bot.deleted_v1"

    def is_user_added(self):
        return self._event_type == "im.chat.member.user.added_v1"

    def is_user_withdrawn(self):
        return self._event_type == "im.chat.member.user.withdrawn_v1"

    def is_user_deleted(self):
        return self._event_type == "im.chat.member.user.deleted_v1"


class MenuEvent(LarkEvent):
    """机器人菜单事件，用户点击机器人菜单时触发"""

    __slots__ = ()

    EVENT_TYPE = "application.bot.menu_v6"

    @property
    def operator(self):
        operator = self._payload.get("operator")
        operator = dict(operator) if isinstance(operator, dict) else {}
        if not isinstance(operator.get("operator_id"), dict):
            operator["operator_id"] = {}
        if not isinstance(operator.get("operator_type"), str):
            operator["operator_type"] = "user"
        return operator

    @property
    def operator_open_id(self):
        return self._str_from(self.operator["operator_id"], "open_id")

    @property
    def operator_user_id(self):
        return self._str_from(self.operator["operator_id"], "user_id")

    @property
    def operator_union_id(self):
        return self._str_from(self.operator["operator_id"], "union_id")

    @property
    def operator_type(self):
        return self.operator["operator_type"]

    @property
    def event_key(self):
        return self._str("event_key")

    @property
    def event_timestamp(self):
        try:
            return int(self._payload.get("timestamp"))
        except (TypeError, ValueError):
            return int(time.time())

    def is_user_operation(self):
        return self.operator_type == "user"


class GenericEvent(LarkEvent):
    """通用事件，用于未定义具体类型的事件"""

    __slots__ = ()

    def get(self, key, default=None):
        return self._payload.get(key, default)

    def has(self, key):
        return self._payload.get(key) is not None


class UrlVerificationEvent:
    """URL验证事件，飞书配置事件订阅地址时触发"""

    __slots__ = ("challenge", "data")

    def __init__(self, challenge, data):
        self.challenge = challenge
        self.data = MappingProxyType(dict(data))


# 事件类型 -> 事件类
EVENT_MAPPING = MappingProxyType({
    "im.message.receive_v1": MessageEvent,
    "im.message.reaction.created_v1": MessageReactionEvent,
    "im.message.reaction.deleted_v1": MessageReactionEvent,
    "contact.user.created_v3": UserEvent,
    "contact.user.updated_v3": UserEvent,
    "contact.user.deleted_v3": UserEvent,
    "im.chat.disbanded_v1": GroupEvent,
    "im.chat.updated_v1": GroupEvent,
    "im.chat.member.bot.added_v1": GroupMemberEvent,
    "im.chat.member.bot.deleted_v1": GroupMemberEvent,
    "im.chat.member.user.added_v1": GroupMemberEvent,
    "im.chat.member.user.withdrawn_v1": GroupMemberEvent,
    "im.chat.member.user.deleted_v1": GroupMemberEvent,
    MenuEvent.EVENT_TYPE: MenuEvent,
})
