"""
ModCache - 模组目录的本地缓存与依赖解析工具
"""

__version__ = "0.1.0"
