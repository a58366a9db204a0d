"""
飞书API客户端测试
"""

import json
from unittest.mock import Mock, patch

import pytest
import requests

from lark_utils.exceptions import LarkApiException, ValidationException
from lark_utils.lark_api import LarkApiClient
from lark_utils.message_builder import RichTextBuilder


def api_response(code=0, msg="success", status_code=200, data=None):
    resp = Mock()
    resp.status_code = status_code
    resp.text = json.dumps({"code": code, "msg": msg})
    resp.json.return_value = {"code": code, "msg": msg, "data": data or {}}
    if status_code != 200:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    return resp


@pytest.fixture
def token_manager():
    manager = Mock()
    manager.get_token.return_value = "t-abc"
    return manager


@pytest.fixture
def lark_client(token_manager):
    return LarkApiClient(token_manager, "https://open.feishu.cn", timeout=5)


class TestSend:
    """测试发送消息"""

    def test_send_text(self, lark_client):
        with patch("lark_utils.lark_api.requests.post", return_value=api_response()) as mock_post:
            result = lark_client.send_text("chat_id", "oc_1", "你好")

        assert result["code"] == 0
        kwargs = mock_post.call_args[1]
        assert kwargs["url"] == "https://open.feishu.cn/open-apis/im/v1/messages?receive_id_type=chat_id"
        assert kwargs["headers"]["Authorization"] == "Bearer t-abc"
        assert kwargs["json"] == {
            "receive_id": "oc_1",
            "content": json.dumps({"text": "你好"}, ensure_ascii=False),
            "msg_type": "text",
        }
        assert kwargs["timeout"] == 5

    def test_send_card(self, lark_client):
        card = {"header": {"title": {"tag": "plain_text", "content": "t"}},
                "elements": [{"tag": "hr"}]}
        with patch("lark_utils.lark_api.requests.post", return_value=api_response()) as mock_post:
            lark_client.send_card("open_id", "ou_1", card)

        body = mock_post.call_args[1]["json"]
        assert body["msg_type"] == "interactive"
        assert json.loads(body["content"]) == card

    def test_invalid_card_not_sent(self, lark_client):
        with patch("lark_utils.lark_api.requests.post") as mock_post:
            with pytest.raises(ValidationException):
                lark_client.send_card("chat_id", "oc_1", {"header": {"title": {"content": "t"}},
                                                          "elements": []})
        mock_post.assert_not_called()

    def test_send_post_from_builder(self, lark_client):
        builder = RichTextBuilder("通知").add_text("内容")
        with patch("lark_utils.lark_api.requests.post", return_value=api_response()) as mock_post:
            lark_client.send_post("chat_id", "oc_1", builder)

        body = mock_post.call_args[1]["json"]
        assert body["msg_type"] == "post"
        assert json.loads(body["content"]) == {
            "zh_cn": {"title": "通知", "content": [[
                {"tag": "text", "text": "内容", "un_escape": False},
            ]]},
        }

    def test_invalid_msg_type(self, lark_client):
        with patch("lark_utils.lark_api.requests.post") as mock_post:
            with pytest.raises(ValidationException) as exc_info:
                lark_client.send("chat_id", "oc_1", "video", {})

        assert "msg_type" in exc_info.value.errors
        mock_post.assert_not_called()

    def test_invalid_receive_id_type(self, lark_client):
        with pytest.raises(ValidationException) as exc_info:
            lark_client.send_text("phone", "123", "hi")
        assert "receive_id_type" in exc_info.value.formatted_errors()


class TestReply:
    """测试回复消息"""

    def test_reply_message(self, lark_client):
        with patch("lark_utils.lark_api.requests.post", return_value=api_response()) as mock_post:
            lark_client.reply_message("om_1", "text", {"text": "ok"})

        kwargs = mock_post.call_args[1]
        assert kwargs["url"] == "https://open.feishu.cn/open-apis/im/v1/messages/om_1/reply"
        assert kwargs["json"]["msg_type"] == "text"

    def test_reply_without_message_id(self, lark_client):
        with pytest.raises(ValidationException):
            lark_client.reply_message("", "text", {"text": "ok"})


class TestErrorResponse:
    """测试错误响应处理"""

    def test_api_error(self, lark_client, token_manager):
        with patch("lark_utils.lark_api.requests.post",
                   return_value=api_response(code=230001, msg="invalid receive_id")):
            with pytest.raises(LarkApiException) as exc_info:
                lark_client.send_text("chat_id", "oc_1", "hi")

        assert exc_info.value.code == 230001
        assert str(exc_info.value) == "飞书API错误 [230001]: invalid receive_id"
        token_manager.clear.assert_not_called()

    @pytest.mark.parametrize("code", [99991661, 99991663, 99991668])
    def test_invalid_token_code_clears_token(self, lark_client, token_manager, code):
        with patch("lark_utils.lark_api.requests.post",
                   return_value=api_response(code=code, msg="invalid token")):
            with pytest.raises(LarkApiException):
                lark_client.send_text("chat_id", "oc_1", "hi")

        token_manager.clear.assert_called_once()

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_unauthorized_clears_token(self, lark_client, token_manager, status_code):
        with patch("lark_utils.lark_api.requests.post",
                   return_value=api_response(status_code=status_code)):
            with pytest.raises(requests.HTTPError):
                lark_client.send_text("chat_id", "oc_1", "hi")

        token_manager.clear.assert_called_once()

    def test_server_error_keeps_token(self, lark_client, token_manager):
        with patch("lark_utils.lark_api.requests.post",
                   return_value=api_response(status_code=502)):
            with pytest.raises(requests.HTTPError):
                lark_client.send_text("chat_id", "oc_1", "hi")

        token_manager.clear.assert_not_called()
