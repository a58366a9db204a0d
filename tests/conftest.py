"""
Pytest 配置和测试固件
"""

import json
import time
import pytest
import sys
import os
from unittest.mock import Mock

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from config import Config
from lark_utils.token_manager import MemoryTokenCache, TokenManager
from lark_utils.verifier import compute_signature

VERIFICATION_TOKEN = "v_token_test"
ENCRYPT_KEY = "e_key_test"
BOT_OPEN_ID = "ou_bot_test_123"


@pytest.fixture
def config(tmp_path):
    """创建测试配置，不依赖环境变量"""
    return Config(
        APP_ID="cli_test_app",
        APP_SECRET="test_secret",
        VERIFICATION_TOKEN=VERIFICATION_TOKEN,
        ENCRYPT_KEY=ENCRYPT_KEY,
        BOT_OPEN_ID=BOT_OPEN_ID,
        CACHE_DIR=str(tmp_path / "cache"),
    )


@pytest.fixture
def token_manager():
    """使用进程内缓存的令牌管理器"""
    return TokenManager("cli_test_app", "test_secret", cache=MemoryTokenCache())


@pytest.fixture
def mock_lark_client():
    """模拟的飞书API客户端"""
    return Mock()


@pytest.fixture
def app(config, token_manager, mock_lark_client):
    """创建测试用Flask应用"""
    from main import create_app

    flask_app = create_app(config, token_manager=token_manager, lark_client=mock_lark_client)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


def sign_request(body, encrypt_key=ENCRYPT_KEY, timestamp=None, request_id="req_test_1"):
    """
    生成带签名的请求头和请求体

    Args:
        body: dict（序列化为JSON）或原始bytes/str
        encrypt_key: 签名使用的加密密钥
        timestamp: 请求时间戳，默认当前时间
        request_id: 请求ID

    Returns:
        tuple: (headers, raw_body)
    """
    if isinstance(body, dict):
        raw_body = json.dumps(body).encode("utf-8")
    elif isinstance(body, str):
        raw_body = body.encode("utf-8")
    else:
        raw_body = body

    if timestamp is None:
        timestamp = str(int(time.time()))

    headers = {
        "X-Lark-Signature": compute_signature(timestamp, request_id, encrypt_key, raw_body),
        "X-Lark-Request-Timestamp": timestamp,
        "X-Lark-Request-Id": request_id,
    }
    return headers, raw_body


def event_callback(event_type, event, token=VERIFICATION_TOKEN, event_id="ev_test_1"):
    """构造v2格式的事件回调请求体"""
    return {
        "schema": "2.0",
        "header": {
            "event_id": event_id,
            "event_type": event_type,
            "create_time": "1700000000000",
            "token": token,
            "app_id": "cli_test_app",
            "tenant_key": "tenant_test",
        },
        "event": event,
    }


def text_message(text, chat_type="p2p", mentions=None, message_id="om_test_1",
                 chat_id="oc_test_chat", sender_open_id="ou_user_1"):
    """构造 im.message.receive_v1 事件数据"""
    return {
        "sender": {
            "sender_id": {"open_id": sender_open_id, "user_id": "u_1", "union_id": "on_1"},
            "sender_type": "user",
            "tenant_key": "tenant_test",
        },
        "message": {
            "message_id": message_id,
            "chat_id": chat_id,
            "chat_type": chat_type,
            "message_type": "text",
            "content": json.dumps({"text": text}),
            "mentions": mentions or [],
        },
    }
