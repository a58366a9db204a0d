#!/usr/bin/env python3
"""
文本/富文本消息构建
与卡片构建器一致，添加内容的方法返回构建器本身，build() 输出消息 content 结构
"""

import copy
import json

from .exceptions import ValidationException


class TextMessageBuilder:
    """
    文本消息构建器（msg_type=text）

    示例:
        content = (TextMessageBuilder("发布完成")
                   .append_line("负责人：")
                   .at_user("ou_xxx", "张三")
                   .build())
    """

    msg_type = "text"

    def __init__(self, text=""):
        self._text = text

    @property
    def text(self):
        return self._text

    def set_text(self, text):
        self._text = text
        return self

    def append_text(self, text):
        self._text += text
        return self

    def append_line(self, line=""):
        """追加一行，已有内容时先换行"""
        if self._text:
            self._text += "\n"
        self._text += line
        return self

    def at_user(self, user_id, name=""):
        self._text += f'<at user_id="{user_id}">{name}</at>'
        return self

    def at_all(self):
        self._text += '<at user_id="all">所有人</at>'
        return self

    def add_link(self, url, text=""):
        """添加链接，未指定链接文本时直接使用url"""
        if text:
            self._text += f'<a href="{url}">{text}</a>'
        else:
            self._text += url
        return self

    def is_valid(self):
        return bool(self._text)

    def reset(self):
        self._text = ""
        return self

    def build(self):
        """
        Returns:
            dict: {"text": ...}

        Raises:
            ValidationException: 文本为空
        """
        if not self.is_valid():
            raise ValidationException("文本消息内容不能为空")
        return {"text": self._text}

    def to_json(self):
        return json.dumps(self.build(), ensure_ascii=False)


class RichTextBuilder:
    """
    富文本消息构建器（msg_type=post）
    内容按语言分组，每种语言包含标题和若干段落，段落由行内元素组成

    示例:
        post = (RichTextBuilder("上线通知")
                .add_bold("服务A")
                .add_text(" 已发布，详情见 ")
                .add_link("发布记录", "https://example.com")
                .new_paragraph()
                .at_all()
                .build())
    """

    msg_type = "post"
    DEFAULT_LOCALE = "zh_cn"

    def __init__(self, title="", locale=DEFAULT_LOCALE):
        self._locale = locale
        # 语言 -> {"title": str, "content": [段落, ...]}
        self._content = {}
        # 语言 -> 尚未结束的段落
        self._paragraphs = {}
        self.set_locale(locale)
        if title:
            self.set_title(title)

    @classmethod
    def from_text(cls, text, locale=DEFAULT_LOCALE):
        return cls(locale=locale).add_text(text)

    def set_locale(self, locale):
        """切换当前语言，后续添加的内容写入该语言"""
        self._locale = locale
        self._content.setdefault(locale, {"title": "", "content": []})
        self._paragraphs.setdefault(locale, [])
        return self

    def set_title(self, title, locale=None):
        locale = locale or self._locale
        self._content.setdefault(locale, {"title": "", "content": []})
        self._content[locale]["title"] = title
        return self

    def add_text(self, text, unescape=False):
        return self._add({"tag": "text", "text": text, "un_escape": unescape})

    def add_styled_text(self, text, **styles):
        """
        添加带样式的文本

        Args:
            text: 文本内容
            **styles: 样式开关，如 bold=True, italic=True, underline=True, lineThrough=True
        """
        return self._add({"tag": "text", "text": text, "style": dict(styles)})

    def add_bold(self, text):
        return self.add_styled_text(text, bold=True)

    def add_italic(self, text):
        return self.add_styled_text(text, italic=True)

    def add_underline(self, text):
        return self.add_styled_text(text, underline=True)

    def add_line_through(self, text):
        return self.add_styled_text(text, lineThrough=True)

    def add_link(self, text, href):
        return self._add({"tag": "a", "text": text, "href": href})

    def at_user(self, user_id, user_name):
        return self._add({"tag": "at", "user_id": user_id, "user_name": user_name})

    def at_all(self):
        return self.at_user("all", "所有人")

    def add_image(self, image_key, width=None, height=None):
        element = {"tag": "img", "image_key": image_key}
        if width is not None:
            element["width"] = width
        if height is not None:
            element["height"] = height
        return self._add(element)

    def add_emoji(self, emoji_type):
        return self._add({"tag": "emotion", "emoji_type": emoji_type})

    def new_paragraph(self):
        """结束当前段落，空段落不会被保留"""
        paragraph = self._paragraphs.get(self._locale)
        if paragraph:
            self._content[self._locale]["content"].append(paragraph)
            self._paragraphs[self._locale] = []
        return self

    add_line_break = new_paragraph

    def is_valid(self):
        if any(self._paragraphs.values()):
            return True
        return any(item["title"] or item["content"] for item in self._content.values())

    def reset(self):
        self._content = {}
        self._paragraphs = {}
        return self.set_locale(self.DEFAULT_LOCALE)

    def build(self):
        """
        Returns:
            dict: {locale: {"title": ..., "content": [[element, ...], ...]}}

        Raises:
            ValidationException: 没有任何标题或内容
        """
        if not self.is_valid():
            raise ValidationException("富文本消息内容不能为空")

        result = copy.deepcopy(self._content)
        for locale, paragraph in self._paragraphs.items():
            if paragraph:
                result[locale]["content"].append(copy.deepcopy(paragraph))
        return result

    def to_json(self):
        return json.dumps(self.build(), ensure_ascii=False)

    def _add(self, element):
        self._paragraphs[self._locale].append(element)
        return self
