#!/usr/bin/env python3
"""
飞书API客户端
用于发送、回复飞书消息，访问令牌由 TokenManager 提供
"""

import json
import logging
import requests

from .card import validate_card
from .exceptions import LarkApiException, ValidationException
from .message_builder import RichTextBuilder

logger = logging.getLogger(__name__)

# 飞书返回这些错误码时说明当前access token已失效
INVALID_TOKEN_CODES = (99991661, 99991663, 99991668)


class LarkApiClient:
    """飞书API客户端"""

    MESSAGE_URI = "/open-apis/im/v1/messages"

    MSG_TYPES = (
        "text", "post", "image", "file", "audio", "media",
        "sticker", "interactive", "share_chat", "share_user",
    )
    RECEIVE_ID_TYPES = ("open_id", "user_id", "union_id", "email", "chat_id")

    def __init__(self, token_manager, lark_host="https://open.feishu.cn", timeout=10):
        """
        初始化飞书API客户端

        Args:
            token_manager: 访问令牌管理器
            lark_host: 飞书API地址
            timeout: 请求超时（秒）
        """
        self._token_manager = token_manager
        self._lark_host = lark_host
        self._timeout = timeout

    def send(self, receive_id_type, receive_id, msg_type, content):
        """
        发送消息

        Args:
            receive_id_type: 接收者ID类型 (open_id, chat_id, user_id等)
            receive_id: 接收者ID
            msg_type: 消息类型 (text, post, image, interactive等)
            content: 消息内容（dict或JSON字符串）

        Returns:
            dict: 飞书API响应
        """
        self._validate(msg_type=msg_type, receive_id_type=receive_id_type)

        url = f"{self._lark_host}{self.MESSAGE_URI}?receive_id_type={receive_id_type}"
        req_body = {
            "receive_id": receive_id,
            "content": self._encode_content(content),
            "msg_type": msg_type,
        }

        logger.info(f"发送消息: {receive_id_type}={receive_id}, msg_type={msg_type}")
        resp = requests.post(url=url, headers=self._headers(), json=req_body, timeout=self._timeout)

        self._check_error_response(resp)

        logger.info("消息发送成功")
        return resp.json()

    def send_text(self, receive_id_type, receive_id, text):
        """发送文本消息"""
        return self.send(receive_id_type, receive_id, "text", {"text": text})

    def send_card(self, receive_id_type, receive_id, card):
        """发送卡片消息，发送前校验卡片结构"""
        validate_card(card)
        return self.send(receive_id_type, receive_id, "interactive", card)

    def send_post(self, receive_id_type, receive_id, post):
        """
        发送富文本消息

        Args:
            post: RichTextBuilder 或其 build() 结果
        """
        if isinstance(post, RichTextBuilder):
            post = post.build()
        return self.send(receive_id_type, receive_id, "post", post)

    def reply_message(self, message_id, msg_type, content):
        """
        回复消息（引用回复）

        Args:
            message_id: 要回复的消息ID
            msg_type: 消息类型 (text, post, image, interactive等)
            content: 消息内容（dict或JSON字符串）
        """
        self._validate(msg_type=msg_type)
        if not message_id:
            raise ValidationException("回复消息缺少message_id")

        url = f"{self._lark_host}{self.MESSAGE_URI}/{message_id}/reply"
        req_body = {
            "content": self._encode_content(content),
            "msg_type": msg_type,
        }

        logger.info(f"回复消息: message_id={message_id}, msg_type={msg_type}")
        resp = requests.post(url=url, headers=self._headers(), json=req_body, timeout=self._timeout)

        self._check_error_response(resp)

        logger.info("消息回复成功")
        return resp.json()

    def _headers(self):
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._token_manager.get_token()}",
        }

    def _validate(self, msg_type=None, receive_id_type=None):
        errors = {}
        if msg_type is not None and msg_type not in self.MSG_TYPES:
            errors["msg_type"] = f"不支持的消息类型: {msg_type}"
        if receive_id_type is not None and receive_id_type not in self.RECEIVE_ID_TYPES:
            errors["receive_id_type"] = f"不支持的接收者ID类型: {receive_id_type}"
        if errors:
            raise ValidationException("消息参数校验失败", errors)

    @staticmethod
    def _encode_content(content):
        if isinstance(content, dict):
            return json.dumps(content, ensure_ascii=False)
        return content

    def _check_error_response(self, resp):
        """
        检查响应是否包含错误信息

        Args:
            resp: requests响应对象

        Raises:
            requests.HTTPError: HTTP状态码非200
            LarkApiException: 当响应包含错误时
        """
        if resp.status_code != 200:
            logger.error(f"HTTP请求失败: {resp.status_code} - {resp.text}")
            if resp.status_code in (401, 403):
                self._token_manager.clear()
            resp.raise_for_status()

        response_dict = resp.json()
        code = response_dict.get("code", -1)

        if code != 0:
            msg = response_dict.get("msg", "未知错误")
            logger.error(f"飞书API错误: code={code}, msg={msg}")
            if code in INVALID_TOKEN_CODES:
                self._token_manager.clear()
            raise LarkApiException(code=code, msg=msg)
