"""
ModCache 下载层

包含模组文件缓存与 SHA1 校验。
"""

from modcache.download.artifact_cache import ArtifactCache, artifact_name
from modcache.download.verifier import ArtifactVerifier

__all__ = [
    "ArtifactCache",
    "artifact_name",
    "ArtifactVerifier",
]
