"""
TLS端点健康探测插件
"""

__version__ = "1.0.0"
