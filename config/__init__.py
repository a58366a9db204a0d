"""
配置模块
"""

from .config import Config

__all__ = ['Config']
