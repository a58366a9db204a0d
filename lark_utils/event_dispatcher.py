#!/usr/bin/env python3
"""
飞书事件分发模块
根据事件类型构造具体事件对象，并按优先级同步通知已注册的监听器
"""

import logging

from .events import EVENT_MAPPING, GenericEvent, LarkEvent

logger = logging.getLogger(__name__)


class EventDispatcher:
    """飞书事件分发器"""

    def __init__(self):
        self._event_mapping = dict(EVENT_MAPPING)
        # 事件类 -> [(listener, priority), ...]，按优先级降序
        self._listeners = {}

    def dispatch(self, event_type, payload, context=None):
        """
        分发事件

        Args:
            event_type: 飞书事件类型
            payload: 事件数据
            context: 上下文信息（event_id、tenant_key、app_id）

        Returns:
            LarkEvent: 构造出的事件对象
        """
        logger.debug("分发飞书事件: %s, context=%s", event_type, context)

        event = self.create_event(event_type, payload, context)
        self.publish(event)
        return event

    def publish(self, event):
        """
        将已构造的事件通知给该事件类的监听器
        监听器抛出的异常直接向上传递
        """
        for listener in self.get_listeners(type(event)):
            listener(event)

    def create_event(self, event_type, payload, context=None):
        """构造事件对象，未映射或构造失败时使用通用事件"""
        event_class = self._event_mapping.get(event_type, GenericEvent)

        try:
            return event_class(event_type, payload, context)
        except Exception as e:
            logger.error("创建事件对象失败，使用通用事件: event_type=%s, event_class=%s, error=%s",
                         event_type, event_class.__name__, e)
            return GenericEvent(event_type, payload, context)

    def add_listener(self, event_class, listener, priority=0):
        """
        注册事件监听器

        Args:
            event_class: 监听的事件类，如 MessageEvent
            listener: 回调函数，参数为事件对象
            priority: 优先级，数字越大越先执行，相同优先级按注册顺序
        """
        listeners = self._listeners.setdefault(event_class, [])
        listeners.append((listener, priority))
        # sort是稳定排序，同优先级保持注册顺序
        listeners.sort(key=lambda item: item[1], reverse=True)

    def remove_listener(self, event_class, listener):
        """移除事件监听器"""
        listeners = self._listeners.get(event_class)
        if not listeners:
            return
        self._listeners[event_class] = [item for item in listeners if item[0] != listener]

    def get_listeners(self, event_class):
        """获取事件类的监听器（已按优先级排序）"""
        return [listener for listener, _ in self._listeners.get(event_class, [])]

    def has_listeners(self, event_class):
        return bool(self._listeners.get(event_class))

    def get_supported_event_types(self):
        """获取已映射的事件类型"""
        return list(self._event_mapping)

    def register_event_mapping(self, event_type, event_class):
        """注册事件类型与事件类的映射"""
        if not (isinstance(event_class, type) and issubclass(event_class, LarkEvent)):
            raise TypeError(f"事件类必须继承 LarkEvent: {event_class!r}")
        self._event_mapping[event_type] = event_class


class AsyncEventMessage:
    """异步事件消息，用于在消息队列中传递事件信息"""

    __slots__ = ("event_type", "event_data", "context")

    def __init__(self, event_type, event_data, context=None):
        self.event_type = event_type
        self.event_data = dict(event_data)
        self.context = dict(context or {})


class AsyncEventHandler:
    """
    异步事件处理器
    只负责把事件投递到外部消息总线（提供 dispatch(message) 方法的对象），不定义后续处理语义
    """

    def __init__(self, bus=None):
        self._bus = bus

    def dispatch_async(self, event_type, event_data, context=None):
        """
        异步分发事件

        Returns:
            bool: 是否成功投递
        """
        context = context or {}

        if self._bus is None:
            logger.warning("未配置消息总线，无法异步处理事件: %s", event_type)
            return False

        try:
            self._bus.dispatch(AsyncEventMessage(event_type, event_data, context))
        except Exception as e:
            logger.error("异步分发事件失败: event_type=%s, error=%s", event_type, e, exc_info=True)
            return False

        logger.info("事件已加入异步队列: %s, event_id=%s", event_type, context.get("event_id", ""))
        return True

    def is_async_supported(self):
        return self._bus is not None
