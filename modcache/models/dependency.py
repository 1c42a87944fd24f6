"""
依赖声明模型

解析 info.json 中的单行依赖声明，例如 "(?) Flow Control >= 3.0.5"。
"""

from dataclasses import dataclass, field
from enum import Flag
from typing import List, Optional

from modcache.exceptions import InvalidVersionSpec
from modcache.models.version import Version


class DependencyMode(Flag):
    """依赖模式"""

    REQUIRED = 1
    OPTIONAL = 2
    HIDDEN = 4
    CONFLICT = 8
    NO_AFFECT_LOAD_ORDER = 16

    @property
    def sigil(self) -> str:
        """模式对应的前缀符号，必选依赖没有前缀"""
        for prefix, mode in SIGILS:
            if mode == self:
                return prefix
        return ""


# 按优先级排列，"(?)" 必须在 "?" 之前匹配
SIGILS = (
    ("(?)", DependencyMode.OPTIONAL | DependencyMode.HIDDEN),
    ("?", DependencyMode.OPTIONAL),
    ("!", DependencyMode.CONFLICT),
    ("~", DependencyMode.NO_AFFECT_LOAD_ORDER),
)

# "<=" 在 "<" 之前，">=" 在 ">" 之前
OPERATORS = ("<=", "<", ">=", ">", "=")


@dataclass(frozen=True)
class DependencyVersion:
    """依赖的版本约束"""

    op: str
    version: Version

    def matches(self, version: Version) -> bool:
        """检查给定版本是否满足约束"""
        result = version.compare(self.version)
        return {
            "<": result < 0,
            "<=": result <= 0,
            "=": result == 0,
            ">=": result >= 0,
            ">": result > 0,
        }[self.op]

    def __str__(self) -> str:
        return f"{self.op}{self.version}"


@dataclass(frozen=True)
class Dependency:
    """单条依赖声明"""

    name: str
    mode: DependencyMode = DependencyMode.REQUIRED
    version: Optional[DependencyVersion] = None

    @property
    def is_optional(self) -> bool:
        return bool(self.mode & DependencyMode.OPTIONAL)

    @property
    def is_conflict(self) -> bool:
        return bool(self.mode & DependencyMode.CONFLICT)

    def __str__(self) -> str:
        parts = []
        # 没有对应前缀的模式组合（例如单独的 HIDDEN）按必选依赖的形式输出
        if self.mode.sigil:
            parts.append(self.mode.sigil)
        parts.append(self.name)
        if self.version is not None:
            parts.append(str(self.version))
        return " ".join(parts)


@dataclass
class Dependencies:
    """按类别分组的依赖"""

    required: List[Dependency] = field(default_factory=list)
    optional: List[Dependency] = field(default_factory=list)
    conflicts: List[Dependency] = field(default_factory=list)

    @classmethod
    def classify(cls, dependencies: List[Dependency]) -> "Dependencies":
        """
        分组依赖

        OPTIONAL 位优先于 CONFLICT 位；HIDDEN 只影响展示。
        """
        grouped = cls()
        for dep in dependencies:
            if dep.is_optional:
                grouped.optional.append(dep)
            elif dep.is_conflict:
                grouped.conflicts.append(dep)
            else:
                grouped.required.append(dep)
        return grouped


def _find_operator(text: str) -> tuple[str, int]:
    """返回第一个命中的比较运算符及其位置，没有则返回 ("", -1)"""
    for op in OPERATORS:
        index = text.find(op)
        if index != -1:
            return op, index
    return "", -1


def parse_dependency(text: str) -> Dependency:
    """
    解析依赖声明

    语法: [前缀 " "] 名称 [" " 运算符 " " 版本]

    Args:
        text: 依赖声明字符串

    Returns:
        Dependency 对象

    Raises:
        InvalidVersionSpec: 存在运算符但版本号无法解析
    """
    mode = DependencyMode.REQUIRED
    rest = text
    for prefix, candidate in SIGILS:
        if text.startswith(prefix):
            mode = candidate
            rest = text[len(prefix) :]
            break

    op, index = _find_operator(rest)
    if index == -1:
        return Dependency(name=rest.strip(), mode=mode)

    name = rest[:index].strip()
    raw_version = rest[index + len(op) :].strip()
    try:
        version = Version.parse_strict(raw_version)
    except InvalidVersionSpec as e:
        raise InvalidVersionSpec(
            f"依赖 {text!r} 的版本号无效: {raw_version!r}",
            context={"dependency": text, "version": raw_version},
        ) from e

    return Dependency(
        name=name,
        mode=mode,
        version=DependencyVersion(op=op, version=version),
    )
