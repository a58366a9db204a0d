#!/usr/bin/env python3
"""
配置管理模块
所有配置统一从环境变量读取，由调用方显式传入各组件
"""

import os
import tempfile
from dotenv import load_dotenv, find_dotenv

# 加载环境变量
load_dotenv(find_dotenv())


class Config:
    """配置类 - 统一管理所有配置项"""

    def __init__(self, **overrides):
        """
        从环境变量读取配置，缺省值一律为空字符串（验证和鉴权会因此失败）

        Args:
            **overrides: 覆盖的配置项，键名与属性名一致（如 APP_ID="cli_xxx"）
        """
        # ==================== 飞书应用配置 ====================
        self.APP_ID = os.getenv("LARK_APP_ID", "")
        self.APP_SECRET = os.getenv("LARK_APP_SECRET", "")
        self.LARK_HOST = os.getenv("LARK_HOST", "https://open.feishu.cn")
        self.BOT_OPEN_ID = os.getenv("LARK_BOT_OPEN_ID", "")

        # 事件订阅配置
        self.VERIFICATION_TOKEN = os.getenv("LARK_VERIFICATION_TOKEN", "")
        self.ENCRYPT_KEY = os.getenv("LARK_ENCRYPT_KEY", "")

        # ==================== 令牌缓存配置 ====================
        self.CACHE_DIR = os.getenv(
            "LARK_CACHE_DIR",
            os.path.join(tempfile.gettempdir(), "lark_app_bot")
        )
        self.REQUEST_TIMEOUT = int(os.getenv("LARK_REQUEST_TIMEOUT", "10"))
        self.TIMEZONE = os.getenv("LARK_TIMEZONE", "Asia/Shanghai")

        # ==================== 服务配置 ====================
        self.HOST = os.getenv("HOST", "0.0.0.0")
        self.PORT = int(os.getenv("PORT", "3000"))
        self.DEBUG = os.getenv("DEBUG", "False").lower() == "true"

        # ==================== 日志配置 ====================
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise AttributeError(f"未知配置项: {key}")
            setattr(self, key, value)

    def validate(self):
        """
        验证必需的配置项是否已设置

        Raises:
            ValueError: 存在未配置的必需项
        """
        errors = []

        if not self.APP_ID:
            errors.append("LARK_APP_ID 未配置")
        if not self.APP_SECRET:
            errors.append("LARK_APP_SECRET 未配置")
        if not self.VERIFICATION_TOKEN:
            errors.append("LARK_VERIFICATION_TOKEN 未配置")
        if not self.ENCRYPT_KEY:
            errors.append("LARK_ENCRYPT_KEY 未配置")

        if errors:
            error_msg = "\n".join(errors)
            raise ValueError(f"配置验证失败:\n{error_msg}\n\n请检查 .env 文件配置")

        return True

    def show_config(self):
        """显示当前配置（隐藏敏感信息）"""
        return {
            "飞书配置": {
                "APP_ID": self.APP_ID,
                "APP_SECRET": "***" if self.APP_SECRET else None,
                "VERIFICATION_TOKEN": "***" if self.VERIFICATION_TOKEN else None,
                "ENCRYPT_KEY": "***" if self.ENCRYPT_KEY else None,
                "LARK_HOST": self.LARK_HOST,
            },
            "缓存配置": {
                "cache_dir": self.CACHE_DIR,
                "request_timeout": self.REQUEST_TIMEOUT,
                "timezone": self.TIMEZONE,
            },
            "服务配置": {
                "host": self.HOST,
                "port": self.PORT,
                "debug": self.DEBUG,
                "log_level": self.LOG_LEVEL,
            }
        }


if __name__ == "__main__":
    """测试配置"""
    import json

    config = Config()

    print("=" * 60)
    print("配置信息:")
    print("=" * 60)
    print(json.dumps(config.show_config(), ensure_ascii=False, indent=2))
    print("=" * 60)

    try:
        config.validate()
        print("✅ 配置验证通过")
    except ValueError as e:
        print(f"❌ 配置验证失败:\n{e}")
