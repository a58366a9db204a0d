#!/usr/bin/env python3
"""
飞书机器人 - 主服务
接收飞书事件回调，并提供主动发送消息的HTTP API
"""

import logging
from flask import Flask, jsonify, request as flask_request

# 导入配置和API客户端
from config import Config
from lark_utils import (
    CommandMessageHandler,
    DefaultMessageHandler,
    EventDispatcher,
    LarkApiClient,
    LarkApiException,
    MessageHandlerRegistry,
    TokenManager,
    WebhookEndpoint,
)
from lark_utils.subscribers import (
    GroupMemberEventSubscriber,
    MenuEventSubscriber,
    MenuRouter,
    MessageEventSubscriber,
    subscribe_url_verification,
)

logger = logging.getLogger(__name__)


def create_app(config=None, token_manager=None, lark_client=None):
    """
    创建Flask应用并完成各组件装配

    Args:
        config: 配置对象，默认从环境变量读取
        token_manager: 访问令牌管理器，默认使用文件缓存
        lark_client: 飞书API客户端

    Returns:
        Flask: 应用实例，组件挂在 app.extensions["lark_bot"] 下
    """
    config = config or Config()

    # 验证配置，缺少配置时继续运行，签名/鉴权会失败
    try:
        config.validate()
        logger.info("✅ 配置验证通过")
    except ValueError as e:
        logger.warning(f"❌ {e}")

    token_manager = token_manager or TokenManager.from_config(config)
    lark_client = lark_client or LarkApiClient(
        token_manager, config.LARK_HOST, config.REQUEST_TIMEOUT
    )

    # 消息处理器
    handler_registry = MessageHandlerRegistry([
        CommandMessageHandler(lark_client),
        DefaultMessageHandler(lark_client, config.BOT_OPEN_ID),
    ])
    menu_router = MenuRouter()

    # 事件分发
    dispatcher = EventDispatcher()
    MessageEventSubscriber(handler_registry).subscribe(dispatcher)
    MenuEventSubscriber(menu_router).subscribe(dispatcher)
    GroupMemberEventSubscriber(lark_client).subscribe(dispatcher)
    subscribe_url_verification(dispatcher)

    webhook = WebhookEndpoint.from_config(dispatcher, config)

    app = Flask(__name__)
    app.extensions["lark_bot"] = {
        "config": config,
        "token_manager": token_manager,
        "lark_client": lark_client,
        "dispatcher": dispatcher,
        "handler_registry": handler_registry,
        "menu_router": menu_router,
        "webhook": webhook,
    }

    @app.errorhandler(404)
    def handle_404(error):
        """处理404错误"""
        # favicon.ico不需要记录日志
        if flask_request.path == '/favicon.ico':
            return '', 204

        logger.warning("404 Not Found: %s", flask_request.path)
        return jsonify({
            "code": 404,
            "msg": "资源不存在"
        }), 404

    @app.errorhandler(Exception)
    def handle_error(error):
        """全局错误处理"""
        logger.error(f"发生错误: {error}", exc_info=True)

        if isinstance(error, LarkApiException):
            return jsonify({
                "code": error.code,
                "msg": error.msg
            }), 500

        return jsonify({
            "code": 500,
            "msg": "Internal server error"
        }), 500

    @app.route("/lark/webhook", methods=["POST"])
    def lark_webhook():
        """
        飞书事件回调接口
        用于处理URL验证和接收飞书事件
        配置地址: http://your-domain/lark/webhook
        """
        result, status_code = webhook.handle(flask_request.headers, flask_request.get_data())
        return jsonify(result), status_code

    @app.route("/api/send_text", methods=["POST"])
    def send_text_api():
        """
        快捷发送文本消息API

        请求示例:
        {
            "chat_id": "oc_xxx",  # 群聊ID
            "text": "你好，这是一条测试消息"
        }

        或者发送给个人:
        {
            "open_id": "ou_xxx",  # 用户open_id
            "text": "你好，这是一条测试消息"
        }
        """
        try:
            data = flask_request.get_json(silent=True)

            if not data:
                return jsonify({"code": 400, "msg": "请求体不能为空"}), 400
            if not isinstance(data, dict):
                return jsonify({"code": 400, "msg": "请求体必须是JSON对象"}), 400

            text = data.get("text")
            if not text:
                return jsonify({"code": 400, "msg": "text不能为空"}), 400

            # 判断是发送给群聊还是个人
            chat_id = data.get("chat_id")
            open_id = data.get("open_id")

            if chat_id:
                logger.info(f"发送文本消息到群聊: {chat_id}")
                lark_client.send_text("chat_id", chat_id, text)
                return jsonify({
                    "code": 0,
                    "msg": "success",
                    "data": {"chat_id": chat_id, "text": text}
                })
            elif open_id:
                logger.info(f"发送文本消息到用户: {open_id}")
                lark_client.send_text("open_id", open_id, text)
                return jsonify({
                    "code": 0,
                    "msg": "success",
                    "data": {"open_id": open_id, "text": text}
                })
            else:
                return jsonify({"code": 400, "msg": "chat_id和open_id至少提供一个"}), 400

        except Exception as e:
            logger.error(f"发送文本消息失败: {e}", exc_info=True)
            return jsonify({"code": 500, "msg": str(e)}), 500

    @app.route("/api/health", methods=["GET"])
    def health_check():
        """健康检查接口"""
        return jsonify({
            "code": 0,
            "msg": "service is running",
            "data": {
                "app_id": config.APP_ID,
                "lark_host": config.LARK_HOST,
                "token_valid": token_manager.is_valid(),
                "config": config.show_config()
            }
        })

    return app


if __name__ == "__main__":
    config = Config()

    # 配置日志
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    app = create_app(config)

    logger.info("=" * 60)
    logger.info("飞书机器人启动中...")
    logger.info("APP_ID: %s", config.APP_ID)
    logger.info("LARK_HOST: %s", config.LARK_HOST)
    logger.info("令牌缓存目录: %s", config.CACHE_DIR)
    logger.info("=" * 60)
    logger.info("API接口:")
    logger.info("  - GET  /api/health         健康检查")
    logger.info("  - POST /api/send_text      发送文本消息")
    logger.info("  - POST /lark/webhook       飞书事件回调")
    logger.info("=" * 60)
    logger.info("🌐 服务地址: http://%s:%s", config.HOST, config.PORT)
    logger.info("=" * 60)

    app.run(host=config.HOST, port=config.PORT, debug=config.DEBUG)
