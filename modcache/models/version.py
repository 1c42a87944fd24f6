"""
版本模型

三段式版本号 (major.minor.patch) 的解析与比较。
"""

import re
from dataclasses import dataclass

from modcache.exceptions import InvalidVersionSpec


# 严格模式接受 "1"、"1.1"、"1.1.0"，缺省的段补 0
_STRICT_VERSION = re.compile(r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?$")


@dataclass(frozen=True, order=True)
class Version:
    """模组版本号，按 (major, minor, patch) 字典序排序"""

    major: int = 0
    minor: int = 0
    patch: int = 0

    @classmethod
    def parse(cls, text: str) -> "Version":
        """
        宽松解析版本号

        缺失或无法解析的字段一律视为 0，永远不会抛出异常。
        用于从缓存文件名推断版本，单个异常文件名不应阻断列表操作。
        """
        fields = (text or "").split(".", 2)
        numbers = [0, 0, 0]
        for i, field in enumerate(fields):
            try:
                numbers[i] = int(field)
            except ValueError:
                pass
        return cls(*numbers)

    @classmethod
    def parse_strict(cls, text: str) -> "Version":
        """
        严格解析版本号

        Raises:
            InvalidVersionSpec: 版本字符串格式错误
        """
        match = _STRICT_VERSION.match((text or "").strip())
        if match is None:
            raise InvalidVersionSpec(
                f"无法解析版本号: {text!r}", context={"version": text}
            )
        return cls(*(int(part) if part else 0 for part in match.groups()))

    @classmethod
    def from_filename(cls, filename: str) -> "Version":
        """从 `<name>_<version>.zip` 形式的文件名中提取版本号"""
        base = filename.rsplit("/", 1)[-1]
        index = base.rfind("_")
        if index == -1:
            return cls()
        raw = base[index + 1 :]
        if raw.endswith(".zip"):
            raw = raw[: -len(".zip")]
        return cls.parse(raw)

    def compare(self, other: "Version") -> int:
        """返回 -1、0 或 1"""
        if self < other:
            return -1
        if self > other:
            return 1
        return 0

    def is_zero(self) -> bool:
        return self.major == 0 and self.minor == 0 and self.patch == 0

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def compare(a: Version, b: Version) -> int:
    """比较两个版本号"""
    return a.compare(b)
