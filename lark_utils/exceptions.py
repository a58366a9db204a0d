#!/usr/bin/env python3
"""
飞书机器人异常定义
"""


class LarkException(Exception):
    """飞书机器人异常基类"""


class ValidationException(LarkException):
    """参数验证异常，用于出站请求参数（消息类型、接收者类型等）校验失败"""

    def __init__(self, msg, errors=None):
        self.msg = msg
        self.errors = dict(errors or {})
        super().__init__(msg)

    def formatted_errors(self):
        """获取格式化的错误信息"""
        if not self.errors:
            return self.msg
        details = "; ".join(f"{field}: {error}" for field, error in self.errors.items())
        return f"{self.msg} ({details})"


class AuthenticationException(LarkException):
    """身份认证异常，获取或刷新访问令牌失败时抛出"""


class LarkApiException(LarkException):
    """飞书API异常"""

    def __init__(self, code=0, msg=None):
        self.code = code
        self.msg = msg
        super().__init__(f"飞书API错误 [{code}]: {msg}")

    def __str__(self):
        return f"飞书API错误 [{self.code}]: {self.msg}"

    __repr__ = __str__
