#!/usr/bin/env python3
"""
Webhook请求校验模块
签名、时间戳与token校验均以返回值表达结果：成功返回None，失败返回ValidationError
"""

import hashlib
import hmac
import time

# 重放攻击窗口（秒）
TIMESTAMP_TOLERANCE_SECONDS = 300


class ValidationError:
    """校验失败结果"""

    __slots__ = ("message",)

    def __init__(self, message):
        self.message = message

    def __eq__(self, other):
        return isinstance(other, ValidationError) and other.message == self.message

    def __hash__(self):
        return hash(self.message)

    def __repr__(self):
        return f"ValidationError({self.message!r})"

    def __str__(self):
        return self.message


def _constant_time_equals(left, right):
    """常量时间比较，兼容非ASCII字符串"""
    return hmac.compare_digest(str(left).encode("utf-8"), str(right).encode("utf-8"))


def compute_signature(timestamp, request_id, encrypt_key, raw_body):
    """
    计算请求签名
    sha256(timestamp + ":" + request_id + ":" + encrypt_key + ":" + body)

    Args:
        timestamp: 请求时间戳（字符串）
        request_id: 请求ID
        encrypt_key: 加密密钥
        raw_body: 原始请求体（bytes或str）

    Returns:
        str: 十六进制签名
    """
    if isinstance(raw_body, str):
        raw_body = raw_body.encode("utf-8")
    prefix = f"{timestamp}:{request_id}:{encrypt_key}:".encode("utf-8")
    return hashlib.sha256(prefix + raw_body).hexdigest()


def verify_signature(signature, timestamp, request_id, raw_body, encrypt_key, now=None):
    """
    校验请求签名和时间戳

    Args:
        signature: X-Lark-Signature 请求头
        timestamp: X-Lark-Request-Timestamp 请求头
        request_id: X-Lark-Request-Id 请求头
        raw_body: 原始请求体
        encrypt_key: 加密密钥
        now: 当前时间戳，默认读取系统时间

    Returns:
        ValidationError | None: 校验通过返回None
    """
    if signature is None or timestamp is None or request_id is None:
        return ValidationError("missing headers")

    if now is None:
        now = time.time()

    # 非整数时间戳按过期处理
    try:
        request_time = int(timestamp)
    except (TypeError, ValueError):
        return ValidationError("stale timestamp")

    if abs(int(now) - request_time) > TIMESTAMP_TOLERANCE_SECONDS:
        return ValidationError("stale timestamp")

    # 未配置encrypt key时任何签名都不可信
    if not encrypt_key:
        return ValidationError("signature mismatch")

    expected = compute_signature(timestamp, request_id, encrypt_key, raw_body)
    if not _constant_time_equals(expected, signature):
        return ValidationError("signature mismatch")

    return None


def _token_matches(token, expected_token):
    return bool(expected_token) and _constant_time_equals(token, expected_token)


def verify_token(envelope, expected_token):
    """
    校验请求体中携带的verification token
    URL验证请求使用顶层token字段，普通事件使用header.token
    未配置verification token时一律校验失败

    Args:
        envelope: 解析后的请求体
        expected_token: 配置的verification token

    Returns:
        ValidationError | None: 校验通过返回None
    """
    token = envelope.get("token")
    if isinstance(token, str):
        if not _token_matches(token, expected_token):
            return ValidationError("token mismatch")
        return None

    header = envelope.get("header")
    if isinstance(header, dict) and isinstance(header.get("token"), str):
        if not _token_matches(header["token"], expected_token):
            return ValidationError("token mismatch")
        return None

    return ValidationError("missing token")
