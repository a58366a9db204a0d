#!/usr/bin/env python3
"""
飞书卡片消息构建
卡片元素通过setter修改（setter返回元素本身，支持链式调用），to_dict() 输出卡片JSON结构
"""

import copy
from datetime import datetime

import pytz

from .exceptions import ValidationException


class CardElement:
    """卡片元素基类"""

    tag = None

    def __init__(self):
        self._data = {}

    def to_dict(self):
        """转换为卡片JSON结构，每次调用返回新的dict"""
        result = {"tag": self.tag}
        result.update(copy.deepcopy(self._data))
        return result

    def _set(self, key, value):
        self._data[key] = value
        return self

    def _get(self, key):
        return self._data.get(key)


class TextElement(CardElement):
    """文本元素"""

    tag = "div"

    PLAIN_TEXT = "plain_text"
    LARK_MD = "lark_md"

    def __init__(self, content, as_markdown=False):
        """
        Args:
            content: 文本内容
            as_markdown: 是否为 lark_md 格式
        """
        super().__init__()
        self._content = content
        self._text_tag = self.LARK_MD if as_markdown else self.PLAIN_TEXT
        self._build()

    def set_content(self, content):
        self._content = content
        return self._build()

    def as_markdown(self):
        self._text_tag = self.LARK_MD
        return self._build()

    def as_plain_text(self):
        self._text_tag = self.PLAIN_TEXT
        return self._build()

    def _build(self):
        return self._set("text", {"content": self._content, "tag": self._text_tag})


class ButtonElement(CardElement):
    """按钮元素"""

    tag = "button"

    TYPE_PRIMARY = "primary"
    TYPE_DEFAULT = "default"
    TYPE_DANGER = "danger"

    def __init__(self, text):
        super().__init__()
        self._text = text
        self._type = self.TYPE_DEFAULT
        self._build()

    def set_text(self, text):
        self._text = text
        return self._build()

    def set_type(self, button_type):
        if button_type not in (self.TYPE_PRIMARY, self.TYPE_DEFAULT, self.TYPE_DANGER):
            raise ValueError(f"不支持的按钮类型: {button_type}")
        self._type = button_type
        return self._build()

    def as_primary(self):
        return self.set_type(self.TYPE_PRIMARY)

    def as_default(self):
        return self.set_type(self.TYPE_DEFAULT)

    def as_danger(self):
        return self.set_type(self.TYPE_DANGER)

    def set_url(self, url):
        return self._set("url", url)

    def set_value(self, value):
        """
        设置回调值

        Args:
            value: 字符串或dict，点击按钮后随卡片回调返回
        """
        if not isinstance(value, (str, dict)):
            raise TypeError("按钮回调值必须是字符串或dict")
        return self._set("value", value)

    def set_multi_url(self, urls):
        """
        设置多端链接

        Args:
            urls: 平台到链接的映射，如 {"url": ..., "android_url": ..., "ios_url": ..., "pc_url": ...}
        """
        return self._set("multi_url", dict(urls))

    def set_confirm(self, title, content):
        """设置点击后的二次确认弹窗"""
        return self._set("confirm", {
            "title": {"content": title, "tag": "plain_text"},
            "text": {"content": content, "tag": "plain_text"},
        })

    def _build(self):
        self._set("text", {"content": self._text, "tag": "plain_text"})
        return self._set("type", self._type)


class CardMessageBuilder:
    """
    卡片消息构建器

    示例:
        card = (CardMessageBuilder("🆔 用户信息", template="green")
                .add_text("**您的用户ID：**\\nou_xxx", as_markdown=True)
                .build())
    """

    def __init__(self, title, template="blue", wide_screen_mode=True):
        self._title = title
        self._template = template
        self._wide_screen_mode = wide_screen_mode
        self._elements = []

    def add_element(self, element):
        """添加卡片元素（CardElement或原始dict）"""
        self._elements.append(element)
        return self

    def add_text(self, content, as_markdown=False):
        return self.add_element(TextElement(content, as_markdown))

    def add_divider(self):
        return self.add_element({"tag": "hr"})

    def add_note(self, content):
        return self.add_element({
            "tag": "note",
            "elements": [{"tag": "plain_text", "content": content}],
        })

    def add_time_note(self, label="⏰ 发送时间", timezone="Asia/Shanghai"):
        """添加带当前时间的备注"""
        now = datetime.now(pytz.timezone(timezone))
        return self.add_note(f"{label}: {now.strftime('%Y-%m-%d %H:%M:%S')}")

    def add_actions(self, *buttons):
        return self.add_element({"tag": "action", "actions": list(buttons)})

    def build(self):
        return {
            "config": {
                "wide_screen_mode": self._wide_screen_mode
            },
            "header": {
                "title": {
                    "tag": "plain_text",
                    "content": self._title
                },
                "template": self._template
            },
            "elements": [_render(element) for element in self._elements]
        }


def _render(element):
    if isinstance(element, CardElement):
        return element.to_dict()
    if isinstance(element, dict):
        rendered = dict(element)
        if "actions" in rendered:
            rendered["actions"] = [_render(action) for action in rendered["actions"]]
        return rendered
    raise TypeError(f"不支持的卡片元素: {element!r}")


HEADER_TEMPLATES = (
    "blue", "wathet", "turquoise", "green", "orange", "red", "grey", "purple", "indigo",
)
MAX_CARD_ELEMENTS = 50


def validate_card(card):
    """
    校验卡片结构

    模板卡片（type=template）只要求 data.template_id 非空；
    普通卡片至少包含一个元素且不超过50个，标题不能为空，颜色模板必须是飞书支持的值

    Raises:
        ValidationException: 卡片结构不合法
    """
    if not isinstance(card, dict):
        raise ValidationException("卡片内容必须是对象")
    if card.get("type") == "template":
        data = card.get("data")
        if not isinstance(data, dict) or not data.get("template_id"):
            raise ValidationException("模板ID不能为空")
        return

    elements = card.get("elements") or []
    if not elements and not card.get("i18n_elements"):
        raise ValidationException("卡片至少需要包含一个元素")
    if len(elements) > MAX_CARD_ELEMENTS:
        raise ValidationException(f"卡片元素数量不能超过{MAX_CARD_ELEMENTS}个")

    header = card.get("header")
    header = header if isinstance(header, dict) else {}
    title = header.get("title")
    if not isinstance(title, dict) or not title.get("content"):
        raise ValidationException("卡片头部标题不能为空")
    if "template" in header and header["template"] not in HEADER_TEMPLATES:
        raise ValidationException(f"无效的头部模板颜色: {header['template']}")
