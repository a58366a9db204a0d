#!/usr/bin/env python3
"""
飞书应用访问令牌管理
负责获取、缓存和刷新 app_access_token
"""

import json
import logging
import os
import tempfile
import time
from datetime import datetime

import pytz
import requests

from .exceptions import AuthenticationException

logger = logging.getLogger(__name__)


class MemoryTokenCache:
    """进程内令牌缓存（带过期时间）"""

    def __init__(self):
        self._store = {}

    def get(self, key):
        item = self._store.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and expires_at <= time.time():
            self._store.pop(key, None)
            return None
        return value

    def set(self, key, value, expires_at=None):
        self._store[key] = (value, expires_at)

    def delete(self, key):
        self._store.pop(key, None)


class FileTokenCache:
    """
    基于本地文件的令牌缓存
    每个缓存键对应缓存目录下的一个JSON文件，多个进程可共享
    """

    def __init__(self, cache_dir):
        self._cache_dir = cache_dir

    @property
    def cache_dir(self):
        return self._cache_dir

    def _path(self, key):
        safe_key = "".join(c if c.isalnum() or c in "-_" else "_" for c in key)
        return os.path.join(self._cache_dir, f"{safe_key}.json")

    def get(self, key):
        path = self._path(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                item = json.load(f)
        except (OSError, ValueError) as e:
            # 缓存文件损坏视为未命中
            logger.warning("读取令牌缓存失败，忽略缓存: %s", e)
            return None

        if not isinstance(item, dict):
            return None
        expires_at = item.get("expires_at")
        if isinstance(expires_at, (int, float)) and expires_at <= time.time():
            self.delete(key)
            return None
        return item.get("value")

    def set(self, key, value, expires_at=None):
        os.makedirs(self._cache_dir, exist_ok=True)
        path = self._path(key)
        # 每次写入使用独立的临时文件，多线程/多进程同时刷新互不覆盖
        with tempfile.NamedTemporaryFile("w", encoding="utf-8", dir=self._cache_dir,
                                         suffix=".tmp", delete=False) as f:
            tmp_path = f.name
            json.dump({"value": value, "expires_at": expires_at}, f)
        try:
            os.replace(tmp_path, path)
        except OSError:
            os.remove(tmp_path)
            raise

    def delete(self, key):
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass


class TokenManager:
    """飞书应用访问令牌管理器"""

    APP_ACCESS_TOKEN_URI = "/open-apis/auth/v3/app_access_token/internal"
    CACHE_KEY = "lark_app_bot.access_token"
    TOKEN_BUFFER_SECONDS = 300  # 5分钟缓冲时间

    def __init__(self, app_id, app_secret, cache=None, lark_host="https://open.feishu.cn",
                 timeout=10, timezone="Asia/Shanghai"):
        """
        初始化令牌管理器

        Args:
            app_id: 应用ID
            app_secret: 应用密钥
            cache: 令牌缓存，需提供 get/set/delete，默认进程内缓存
            lark_host: 飞书API地址
            timeout: 获取令牌的请求超时（秒）
            timezone: get_expires_at 返回值使用的时区
        """
        self._app_id = app_id
        self._app_secret = app_secret
        self._cache = cache if cache is not None else MemoryTokenCache()
        self._lark_host = lark_host
        self._timeout = timeout
        self._timezone = pytz.timezone(timezone)

    @classmethod
    def from_config(cls, config, cache=None):
        """根据配置创建令牌管理器，未指定缓存时使用文件缓存"""
        if cache is None:
            cache = FileTokenCache(config.CACHE_DIR)
        return cls(
            config.APP_ID,
            config.APP_SECRET,
            cache=cache,
            lark_host=config.LARK_HOST,
            timeout=config.REQUEST_TIMEOUT,
            timezone=config.TIMEZONE,
        )

    @property
    def token_url(self):
        return f"{self._lark_host}{self.APP_ACCESS_TOKEN_URI}"

    def get_token(self):
        """
        获取访问令牌，缓存有效时直接返回，否则刷新

        Returns:
            str: app_access_token

        Raises:
            AuthenticationException: 刷新令牌失败
        """
        token_data = self._cache.get(self.CACHE_KEY)
        if self._is_token_data_valid(token_data):
            logger.debug("使用缓存的access token")
            return token_data["token"]

        logger.info("access token不存在或已过期，重新获取")
        return self.refresh()

    def refresh(self):
        """
        请求飞书获取新的访问令牌并写入缓存
        文档: https://open.feishu.cn/document/ukTMukTMukTM/ukDNz4SO0MjL5QzM/auth-v3/auth/app_access_token_internal

        Returns:
            str: 新的 app_access_token

        Raises:
            AuthenticationException: 网络错误、HTTP状态异常、返回code非0或令牌为空
        """
        logger.info("刷新飞书access token...")
        start_time = time.time()

        try:
            token, expire = self._fetch_token()
        except AuthenticationException as e:
            logger.error("刷新access token失败: %s", e)
            self._cache.delete(self.CACHE_KEY)
            raise

        logger.info("获取access token请求完成，耗时 %.4fs", time.time() - start_time)

        expires_at = time.time() + expire - self.TOKEN_BUFFER_SECONDS
        self._cache.set(
            self.CACHE_KEY,
            {"token": token, "expires_at": expires_at},
            expires_at,
        )

        logger.info("✅ access token刷新成功，过期时间: %s",
                    self._to_datetime(expires_at).strftime('%Y-%m-%d %H:%M:%S'))
        return token

    def clear(self):
        """清除缓存的令牌"""
        logger.info("清除缓存的access token")
        self._cache.delete(self.CACHE_KEY)

    def is_valid(self):
        """缓存中是否存在有效令牌"""
        return self._is_token_data_valid(self._cache.get(self.CACHE_KEY))

    def get_expires_at(self):
        """
        获取缓存令牌的过期时间

        Returns:
            datetime | None: 带时区的过期时间，无缓存时返回None
        """
        token_data = self._cache.get(self.CACHE_KEY)
        if not isinstance(token_data, dict):
            return None
        expires_at = token_data.get("expires_at")
        if not isinstance(expires_at, (int, float)):
            return None
        return self._to_datetime(expires_at)

    def _fetch_token(self):
        req_body = {
            "app_id": self._app_id,
            "app_secret": self._app_secret,
        }

        try:
            resp = requests.post(self.token_url, json=req_body, timeout=self._timeout)
        except requests.RequestException as e:
            raise AuthenticationException(f"Failed to refresh access token: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise AuthenticationException(
                f"Failed to get access token: HTTP {resp.status_code}"
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise AuthenticationException("Failed to decode access token response") from e

        if not isinstance(data, dict):
            raise AuthenticationException("Failed to decode access token response")

        if data.get("code", -1) != 0:
            msg = data.get("msg", "Unknown error")
            if not isinstance(msg, str):
                msg = json.dumps(msg, ensure_ascii=False)
            raise AuthenticationException(f"Failed to get access token: {msg}")

        token = data.get("app_access_token")
        if not isinstance(token, str) or not token:
            raise AuthenticationException("Empty access token received")

        try:
            expire = int(data.get("expire", 0))
        except (TypeError, ValueError):
            expire = 0

        return token, expire

    def _to_datetime(self, timestamp):
        return datetime.fromtimestamp(timestamp, tz=self._timezone)

    @staticmethod
    def _is_token_data_valid(token_data):
        """令牌数据有效：token非空且过期时间晚于当前时间"""
        if not isinstance(token_data, dict):
            return False
        token = token_data.get("token")
        if not isinstance(token, str) or not token:
            return False
        expires_at = token_data.get("expires_at")
        if not isinstance(expires_at, (int, float)):
            return False
        return expires_at > time.time()
