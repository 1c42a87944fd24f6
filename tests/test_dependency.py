"""依赖声明解析的测试。"""

import pytest

from modcache.exceptions import InvalidVersionSpec
from modcache.models.dependency import (
    Dependencies,
    Dependency,
    DependencyMode,
    DependencyVersion,
    parse_dependency,
)
from modcache.models.version import Version


class TestParseDependency:
    """parse_dependency"""

    def test_conflict(self):
        dep = parse_dependency("! Explosive Excavation")
        assert dep == Dependency(
            name="Explosive Excavation", mode=DependencyMode.CONFLICT
        )
        assert dep.version is None

    def test_required_with_constraint(self):
        dep = parse_dependency("flib >= 0.12.0")
        assert dep.name == "flib"
        assert dep.mode == DependencyMode.REQUIRED
        assert dep.version == DependencyVersion(op=">=", version=Version(0, 12, 0))

    def test_hidden_optional_without_constraint(self):
        dep = parse_dependency("(?) ElectricTrain")
        assert dep.name == "ElectricTrain"
        assert dep.mode == DependencyMode.OPTIONAL | DependencyMode.HIDDEN

    def test_hidden_optional_name_with_spaces(self):
        dep = parse_dependency("(?) Flow Control >= 3.0.5")
        assert dep.name == "Flow Control"
        assert dep.mode == DependencyMode.OPTIONAL | DependencyMode.HIDDEN
        assert dep.version.op == ">="
        assert dep.version.version == Version(3, 0, 5)

    def test_optional_and_load_order_sigils(self):
        assert parse_dependency("? bobores").mode == DependencyMode.OPTIONAL
        dep = parse_dependency("~ space-exploration")
        assert dep.mode == DependencyMode.NO_AFFECT_LOAD_ORDER
        assert dep.name == "space-exploration"

    @pytest.mark.parametrize(
        "text,op",
        [
            ("a <= 1.0.0", "<="),
            ("a < 1.0.0", "<"),
            ("a >= 1.0.0", ">="),
            ("a > 1.0.0", ">"),
            ("a = 1.0.0", "="),
        ],
    )
    def test_operator_precedence(self, text, op):
        dep = parse_dependency(text)
        assert dep.name == "a"
        assert dep.version.op == op

    def test_malformed_version_fails(self):
        with pytest.raises(InvalidVersionSpec) as exc:
            parse_dependency("flib >= banana")
        assert exc.value.context["dependency"] == "flib >= banana"

    def test_empty_name_is_permitted(self):
        assert parse_dependency("?").name == ""
        assert parse_dependency("").name == ""


class TestRender:
    """字符串渲染与往返"""

    def test_required_round_trip(self):
        dep = Dependency(name="flib")
        assert str(dep) == "flib"
        assert parse_dependency(str(dep)) == dep

    def test_hidden_optional_constraint_round_trip(self):
        dep = Dependency(
            name="Flow Control",
            mode=DependencyMode.OPTIONAL | DependencyMode.HIDDEN,
            version=DependencyVersion(op=">=", version=Version(3, 0, 5)),
        )
        assert str(dep) == "(?) Flow Control >=3.0.5"
        assert parse_dependency(str(dep)) == dep

    def test_conflict_render(self):
        assert str(parse_dependency("! bad-mod")) == "! bad-mod"

    def test_mode_without_sigil_has_no_leading_space(self):
        dep = Dependency(
            "flib",
            DependencyMode.HIDDEN,
            DependencyVersion(">=", Version(0, 12, 0)),
        )

        assert str(dep) == "flib >=0.12.0"
        parsed = parse_dependency(str(dep))
        assert parsed.name == "flib"
        assert parsed.version == dep.version


class TestConstraint:
    def test_matches(self):
        constraint = DependencyVersion(op=">=", version=Version(1, 1, 0))
        assert constraint.matches(Version(1, 1, 0))
        assert constraint.matches(Version(2, 0, 0))
        assert not constraint.matches(Version(1, 0, 9))
        assert DependencyVersion("<", Version(1, 0, 0)).matches(Version(0, 9, 0))
        assert DependencyVersion("=", Version(1, 0, 0)).matches(Version(1, 0, 0))


class TestClassify:
    def test_groups_by_mode(self):
        deps = Dependencies.classify(
            [
                parse_dependency("base >= 1.1"),
                parse_dependency("? optional-mod"),
                parse_dependency("(?) hidden-mod"),
                parse_dependency("! enemy-mod"),
                parse_dependency("~ neutral-mod"),
            ]
        )
        assert [d.name for d in deps.required] == ["base", "neutral-mod"]
        assert [d.name for d in deps.optional] == ["optional-mod", "hidden-mod"]
        assert [d.name for d in deps.conflicts] == ["enemy-mod"]
