"""
探测服务组件
"""
