#!/usr/bin/env python3
"""
飞书事件回调处理模块
签名校验 -> 解析请求体 -> token校验 -> 分发事件 -> 返回固定格式响应
"""

import json
import logging

from .events import UrlVerificationEvent
from .verifier import ValidationError, verify_signature, verify_token

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Lark-Signature"
REQUEST_TIMESTAMP_HEADER = "X-Lark-Request-Timestamp"
REQUEST_ID_HEADER = "X-Lark-Request-Id"


class WebhookEndpoint:
    """飞书webhook回调处理"""

    def __init__(self, dispatcher, verification_token, encrypt_key):
        """
        Args:
            dispatcher: 事件分发器
            verification_token: 事件订阅的verification token
            encrypt_key: 事件订阅的encrypt key，用于签名校验
        """
        self._dispatcher = dispatcher
        self._verification_token = verification_token
        self._encrypt_key = encrypt_key

    @classmethod
    def from_config(cls, dispatcher, config):
        return cls(dispatcher, config.VERIFICATION_TOKEN, config.ENCRYPT_KEY)

    def handle(self, headers, raw_body):
        """
        处理飞书webhook回调

        Args:
            headers: 请求头（支持 get 的映射，Flask的headers大小写不敏感）
            raw_body: 原始请求体（bytes）

        Returns:
            tuple: (response_dict, status_code)
        """
        try:
            logger.debug("收到webhook请求: body_length=%d", len(raw_body or b""))

            error = verify_signature(
                headers.get(SIGNATURE_HEADER),
                headers.get(REQUEST_TIMESTAMP_HEADER),
                headers.get(REQUEST_ID_HEADER),
                raw_body,
                self._encrypt_key,
            )
            if error:
                return self._bad_request(error)

            data, error = self._parse_body(raw_body)
            if error:
                return self._bad_request(error)

            error = verify_token(data, self._verification_token)
            if error:
                return self._bad_request(error)

            result, error = self._handle_event(data)
            if error:
                return self._bad_request(error)
            return result, 200

        except Exception as e:
            logger.error("处理webhook失败: %s", e, exc_info=True)
            return {"code": 500, "msg": "Internal server error"}, 500

    @staticmethod
    def _bad_request(error):
        logger.error("Webhook验证失败: %s", error.message)
        return {"code": 400, "msg": error.message}, 400

    @staticmethod
    def _parse_body(raw_body):
        if not raw_body:
            return None, ValidationError("empty body")

        if isinstance(raw_body, bytes):
            try:
                raw_body = raw_body.decode("utf-8")
            except UnicodeDecodeError:
                return None, ValidationError("invalid json")

        try:
            data = json.loads(raw_body)
        except ValueError:
            return None, ValidationError("invalid json")

        if not isinstance(data, dict):
            return None, ValidationError("malformed body")

        return data, None

    def _handle_event(self, data):
        # URL验证（飞书配置事件订阅时会发送验证请求）
        if data.get("type") == "url_verification":
            return self._handle_url_verification(data)

        header = data.get("header")
        if isinstance(header, dict) and "event_type" in header:
            return self._handle_event_callback(data, header)

        return None, ValidationError("unknown event type")

    def _handle_url_verification(self, data):
        challenge = data.get("challenge")
        if not isinstance(challenge, str):
            return None, ValidationError("missing challenge")

        self._dispatcher.publish(UrlVerificationEvent(challenge, data))
        return {"challenge": challenge}, None

    def _handle_event_callback(self, data, header):
        event_type = header.get("event_type")
        if not isinstance(event_type, str):
            return None, ValidationError("missing event_type")

        context = {
            key: header[key] if isinstance(header.get(key), str) else ""
            for key in ("event_id", "tenant_key", "app_id")
        }
        logger.info("收到飞书事件: %s, event_id=%s, tenant_key=%s, app_id=%s",
                    event_type, context["event_id"], context["tenant_key"], context["app_id"])

        event_data = data.get("event")
        if not isinstance(event_data, dict):
            event_data = {}

        # 飞书要求即使处理失败也要返回200，分发异常只记录日志
        try:
            self._dispatcher.dispatch(event_type, event_data, context)
        except Exception as e:
            logger.error("事件分发失败: event_type=%s, error=%s", event_type, e, exc_info=True)

        return {"code": 0}, None
