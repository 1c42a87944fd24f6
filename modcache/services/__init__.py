"""
ModCache 服务层

包含业务逻辑服务：API 客户端、目录拉取、依赖解析、安装目录处理。
"""

from modcache.services.api_client import PortalClient
from modcache.services.catalog_ingester import CatalogIngester
from modcache.services.install_resolver import InstallationPlan, InstallResolver
from modcache.services.installation import Installation, load_credentials

__all__ = [
    "PortalClient",
    "CatalogIngester",
    "InstallationPlan",
    "InstallResolver",
    "Installation",
    "load_credentials",
]
