"""
事件对象与事件分发测试
"""

from unittest.mock import Mock

import pytest

from conftest import text_message
from lark_utils.event_dispatcher import AsyncEventHandler, AsyncEventMessage, EventDispatcher
from lark_utils.events import (
    EVENT_MAPPING,
    GenericEvent,
    GroupEvent,
    GroupMemberEvent,
    LarkEvent,
    MenuEvent,
    MessageEvent,
    MessageReactionEvent,
    UserEvent,
)

CONTEXT = {"event_id": "ev_1", "tenant_key": "tenant_1", "app_id": "cli_1"}


class TestEventMapping:
    """测试事件类型映射"""

    @pytest.mark.parametrize("event_type, event_class", [
        ("im.message.receive_v1", MessageEvent),
        ("im.message.reaction.created_v1", MessageReactionEvent),
        ("im.message.reaction.deleted_v1", MessageReactionEvent),
        ("contact.user.created_v3", UserEvent),
        ("contact.user.updated_v3", UserEvent),
        ("contact.user.deleted_v3", UserEvent),
        ("im.chat.disbanded_v1", GroupEvent),
        ("im.chat.updated_v1", GroupEvent),
        ("im.chat.member.bot.added_v1", GroupMemberEvent),
        ("im.chat.member.bot.deleted_v1", GroupMemberEvent),
        ("im.chat.member.user.added_v1", GroupMemberEvent),
        ("im.chat.member.user.withdrawn_v1", GroupMemberEvent),
        ("im.chat.member.user.deleted_v1", GroupMemberEvent),
        ("application.bot.menu_v6", MenuEvent),
    ])
    def test_known_types(self, event_type, event_class):
        event = EventDispatcher().create_event(event_type, {}, CONTEXT)
        assert type(event) is event_class
        assert event.event_type == event_type
        assert event.event_id == "ev_1"

    def test_unknown_type_is_generic(self):
        event = EventDispatcher().create_event("foo.bar_v1", {"x": 1})
        assert type(event) is GenericEvent
        assert event.get("x") == 1
        assert event.has("x")
        assert not event.has("y")

    def test_mapping_is_read_only(self):
        with pytest.raises(TypeError):
            EVENT_MAPPING["foo"] = GenericEvent

    def test_supported_event_types(self):
        assert set(EventDispatcher().get_supported_event_types()) == set(EVENT_MAPPING)

    def test_register_event_mapping(self):
        class CustomEvent(LarkEvent):
            __slots__ = ()

        dispatcher = EventDispatcher()
        dispatcher.register_event_mapping("custom.event_v1", CustomEvent)

        assert type(dispatcher.create_event("custom.event_v1", {})) is CustomEvent
        # 其他分发器不受影响
        assert type(EventDispatcher().create_event("custom.event_v1", {})) is GenericEvent

    def test_register_event_mapping_rejects_non_event(self):
        with pytest.raises(TypeError):
            EventDispatcher().register_event_mapping("custom.event_v1", dict)

    def test_construction_failure_falls_back_to_generic(self):
        class BrokenEvent(LarkEvent):
            __slots__ = ()

            def __init__(self, event_type, payload, context=None):
                raise ValueError("broken")

        dispatcher = EventDispatcher()
        dispatcher.register_event_mapping("broken.event_v1", BrokenEvent)

        assert type(dispatcher.create_event("broken.event_v1", {})) is GenericEvent


class TestListeners:
    """测试监听器优先级"""

    def test_priority_order(self):
        dispatcher = EventDispatcher()
        calls = []
        dispatcher.add_listener(MessageEvent, lambda e: calls.append("low"), priority=-10)
        dispatcher.add_listener(MessageEvent, lambda e: calls.append("high"), priority=100)
        dispatcher.add_listener(MessageEvent, lambda e: calls.append("first_zero"))
        dispatcher.add_listener(MessageEvent, lambda e: calls.append("second_zero"))

        dispatcher.dispatch("im.message.receive_v1", text_message("hi"), CONTEXT)

        assert calls == ["high", "first_zero", "second_zero", "low"]

    def test_only_listeners_of_event_class_called(self):
        dispatcher = EventDispatcher()
        message_listener = Mock()
        group_listener = Mock()
        dispatcher.add_listener(MessageEvent, message_listener)
        dispatcher.add_listener(GroupEvent, group_listener)

        event = dispatcher.dispatch("im.chat.updated_v1", {"chat_id": "oc_1"})

        group_listener.assert_called_once_with(event)
        message_listener.assert_not_called()

    def test_remove_listener(self):
        dispatcher = EventDispatcher()
        listener = Mock()
        dispatcher.add_listener(MessageEvent, listener)
        assert dispatcher.has_listeners(MessageEvent)

        dispatcher.remove_listener(MessageEvent, listener)

        assert not dispatcher.has_listeners(MessageEvent)
        dispatcher.dispatch("im.message.receive_v1", {})
        listener.assert_not_called()

    def test_listener_error_propagates(self):
        dispatcher = EventDispatcher()
        dispatcher.add_listener(GenericEvent, Mock(side_effect=RuntimeError("boom")))

        with pytest.raises(RuntimeError):
            dispatcher.dispatch("foo.bar_v1", {})


class TestEvents:
    """测试事件对象的字段解析"""

    def test_event_is_read_only(self):
        event = MessageEvent("im.message.receive_v1", text_message("hi"), CONTEXT)
        with pytest.raises(AttributeError):
            event.foo = "bar"
        with pytest.raises(TypeError):
            event.payload["message"] = {}

    def test_non_dict_payload_rejected(self):
        with pytest.raises(TypeError):
            LarkEvent("x", ["not", "dict"])

    def test_message_event_fields(self):
        event = MessageEvent("im.message.receive_v1",
                             text_message("hello", chat_type="group"), CONTEXT)
        assert event.message_id == "om_test_1"
        assert event.chat_id == "oc_test_chat"
        assert event.sender_id == "ou_user_1"
        assert event.sender_type == "user"
        assert event.plain_text == "hello"
        assert event.is_group_message()
        assert not event.is_private_message()

    def test_message_sender_defaults(self):
        event = MessageEvent("im.message.receive_v1", {"message": {"chat_type": "p2p"}})
        assert event.sender_id == ""
        assert event.sender_type == "user"
        assert event.plain_text == ""

    def test_plain_text_of_non_json_content(self):
        event = MessageEvent("im.message.receive_v1",
                             {"message": {"message_type": "text", "content": "raw"}})
        assert event.plain_text == "raw"

    @pytest.mark.parametrize("mentions, bot_open_id, expected", [
        ([], "ou_bot", False),
        ([{"id": {"open_id": "ou_bot"}}], "ou_bot", True),
        ([{"id": {"open_id": "ou_other"}}], "ou_bot", False),
        ([{"id": {"open_id": "@_all"}}], "ou_bot", True),
        ([{"id": {"open_id": "ou_other"}}], "", True),
    ])
    def test_is_mentioned_bot(self, mentions, bot_open_id, expected):
        event = MessageEvent("im.message.receive_v1",
                             text_message("hi", chat_type="group", mentions=mentions))
        assert event.is_mentioned_bot(bot_open_id) is expected

    def test_reaction_event(self):
        event = MessageReactionEvent("im.message.reaction.created_v1", {
            "message_id": "om_1",
            "reaction_type": {"emoji_type": "SMILE"},
            "user_id": {"open_id": "ou_1"},
            "action_time": "1700000000",
        })
        assert event.emoji_type == "SMILE"
        assert event.operator_id == "ou_1"
        assert event.is_created()
        assert not event.is_deleted()

    def test_user_event(self):
        event = UserEvent("contact.user.created_v3", {"object": {
            "open_id": "ou_1", "name": "张三", "department_ids": ["od_1", 2],
        }})
        assert event.open_id == "ou_1"
        assert event.name == "张三"
        assert event.department_ids == ["od_1"]
        assert event.is_created()

    def test_group_member_event_name_fallback(self):
        event = GroupMemberEvent("im.chat.member.user.added_v1",
                                 {"chat_id": "oc_1", "chat_name": "测试群"})
        assert event.name == "测试群"
        assert event.is_user_added()
        assert not event.is_bot_added()

    def test_menu_event(self):
        event = MenuEvent("application.bot.menu_v6", {
            "operator": {"operator_id": {"open_id": "ou_1", "user_id": "u_1"}},
            "event_key": "report",
            "timestamp": "1700000000",
        })
        assert event.operator_open_id == "ou_1"
        assert event.operator_user_id == "u_1"
        assert event.event_key == "report"
        assert event.event_timestamp == 1700000000
        assert event.is_user_operation()


class TestAsyncEventHandler:
    """测试异步事件投递"""

    def test_without_bus(self):
        handler = AsyncEventHandler()
        assert not handler.is_async_supported()
        assert handler.dispatch_async("im.message.receive_v1", {}) is False

    def test_dispatch_to_bus(self):
        bus = Mock()
        handler = AsyncEventHandler(bus)

        assert handler.dispatch_async("im.message.receive_v1", {"a": 1}, CONTEXT) is True

        message = bus.dispatch.call_args[0][0]
        assert isinstance(message, AsyncEventMessage)
        assert message.event_type == "im.message.receive_v1"
        assert message.event_data == {"a": 1}
        assert message.context == CONTEXT

    def test_bus_error_returns_false(self):
        bus = Mock()
        bus.dispatch.side_effect = RuntimeError("queue down")

        assert AsyncEventHandler(bus).dispatch_async("x", {}) is False


class TestMalformedListFields:
    """列表字段不是列表时返回空列表"""

    def test_group_member_users(self):
        event = GroupMemberEvent("im.chat.member.user.added_v1", {"chat_id": "oc_1", "users": 5})
        assert event.users == []

    def test_user_department_ids(self):
        event = UserEvent("contact.user.updated_v3", {"object": {"department_ids": "od_1"}})
        assert event.department_ids == []

    def test_message_mentions(self):
        event = MessageEvent("im.message.receive_v1", {"message": {"mentions": {"key": "@_user_1"}}})
        assert event.mentions == []
        assert not event.is_mentioned_bot()
