"""Tests for coordinates, scopes, exclusions and the version order."""

from __future__ import annotations

import pytest

from jx.core.dependency import (
    Coordinate,
    Dependency,
    Exclusion,
    Scope,
    compare_versions,
    highest_version,
    common_exclusions,
    is_dynamic,
    is_excluded,
    parse_coordinate,
    split_identity,
)
from jx.exceptions import ConfigError


# ===========================================================================
# Version order
# ===========================================================================


class TestVersionOrder:
    """Maven-style ordering with a total string fallback."""

    @pytest.mark.parametrize(
        "lower, higher",
        [
            ("1.0", "1.1"),
            ("1.9", "1.10"),
            ("2.0", "10.0"),
            ("1.0-alpha1", "1.0-beta1"),
            ("1.0-beta2", "1.0-rc1"),
            ("1.0-rc1", "1.0-SNAPSHOT"),
            ("1.0-SNAPSHOT", "1.0"),
            ("1.0", "1.0-sp1"),
            ("1.0-sp1", "1.0.1"),
            ("1.0-M1", "1.0-RC1"),
            ("1.0", "1.0-foo"),
            ("1.0-foo", "1.0.1"),
        ],
    )
    def test_ordering(self, lower: str, higher: str) -> None:
        assert compare_versions(lower, higher) == -1
        assert compare_versions(higher, lower) == 1

    def test_release_aliases(self) -> None:
        """``Final``/``GA`` rank as the release; only the raw string breaks the tie."""
        assert compare_versions("1.0.Final", "1.0") == 1
        assert compare_versions("1.0.Final", "1.0.1") == -1
        assert compare_versions("1.0-GA", "1.0-rc1") == 1

    def test_trailing_zeros_fall_back_to_string(self) -> None:
        """1.0 and 1.0.0 are equivalent but still strictly ordered."""
        assert compare_versions("1.0", "1.0.0") == -1
        assert compare_versions("1.0.0", "1.0") == 1

    def test_identical_versions_are_equal(self) -> None:
        assert compare_versions("3.2.1", "3.2.1") == 0

    def test_highest_version(self) -> None:
        assert highest_version(["1.2", "1.10", "1.9", "1.10-SNAPSHOT"]) == "1.10"

    @pytest.mark.parametrize("value", ["*", "LATEST", "RELEASE", " * "])
    def test_dynamic_versions(self, value: str) -> None:
        assert is_dynamic(value)

    @pytest.mark.parametrize("value", ["1.0", "", None, "latest-1"])
    def test_not_dynamic(self, value: str | None) -> None:
        assert not is_dynamic(value)


# ===========================================================================
# Scope
# ===========================================================================


class TestScope:
    def test_parse_defaults_to_compile(self) -> None:
        assert Scope.parse(None) is Scope.COMPILE
        assert Scope.parse("") is Scope.COMPILE
        assert Scope.parse("Runtime") is Scope.RUNTIME

    def test_parse_unknown_scope(self) -> None:
        with pytest.raises(ConfigError, match="Unknown scope"):
            Scope.parse("system")

    def test_compile_parent_keeps_child_scope(self) -> None:
        assert Scope.COMPILE.child_scope(Scope.COMPILE) is Scope.COMPILE
        assert Scope.COMPILE.child_scope(Scope.RUNTIME) is Scope.RUNTIME

    def test_runtime_parent_demotes_children(self) -> None:
        assert Scope.RUNTIME.child_scope(Scope.COMPILE) is Scope.RUNTIME

    @pytest.mark.parametrize("parent", [Scope.TEST, Scope.PROVIDED])
    def test_non_propagating_parents(self, parent: Scope) -> None:
        assert not parent.propagates
        assert parent.child_scope(Scope.COMPILE) is None

    @pytest.mark.parametrize("child", [Scope.TEST, Scope.PROVIDED])
    def test_transitive_test_and_provided_not_followed(self, child: Scope) -> None:
        assert Scope.COMPILE.child_scope(child) is None

    def test_breadth_order(self) -> None:
        ordered = sorted(Scope, key=lambda s: s.breadth)
        assert ordered == [Scope.TEST, Scope.PROVIDED, Scope.RUNTIME, Scope.COMPILE]


# ===========================================================================
# Coordinates
# ===========================================================================


class TestCoordinate:
    def test_parse_full(self) -> None:
        c = parse_coordinate("org.lwjgl:lwjgl:3.3.3:natives-linux")
        assert c == Coordinate("org.lwjgl", "lwjgl", "3.3.3", "natives-linux")
        assert c.identity == "org.lwjgl:lwjgl"
        assert c.filename == "lwjgl-3.3.3-natives-linux.jar"
        assert str(c) == "org.lwjgl:lwjgl:3.3.3:natives-linux"

    def test_parse_without_version(self) -> None:
        c = parse_coordinate("junit:junit")
        assert c.version == ""
        assert str(c) == "junit:junit"

    @pytest.mark.parametrize("text", ["junit", "a:b:c:d:e", "a::1.0", ""])
    def test_parse_invalid(self, text: str) -> None:
        with pytest.raises(ConfigError):
            parse_coordinate(text)

    def test_require_version(self) -> None:
        with pytest.raises(ConfigError, match="no version"):
            parse_coordinate("junit:junit", require_version=True)

    def test_with_version_keeps_classifier(self) -> None:
        c = Coordinate("g", "a", "1", "jdk8").with_version("2")
        assert c == Coordinate("g", "a", "2", "jdk8")

    def test_split_identity(self) -> None:
        assert split_identity("org.slf4j:slf4j-api") == ("org.slf4j", "slf4j-api")
        with pytest.raises(ConfigError):
            split_identity("org.slf4j")


# ===========================================================================
# Exclusions
# ===========================================================================


class TestExclusion:
    def test_exact_match(self) -> None:
        ex = Exclusion.parse("commons-logging:commons-logging")
        assert ex.matches("commons-logging:commons-logging")
        assert not ex.matches("commons-logging:other")

    def test_wildcards(self) -> None:
        assert Exclusion("*", "*").matches("any:thing")
        assert Exclusion("org.slf4j", "*").matches("org.slf4j:slf4j-api")
        assert not Exclusion("org.slf4j", "*").matches("ch.qos.logback:logback-core")
        assert Exclusion("*", "guava").matches("com.google.guava:guava")

    def test_is_excluded(self) -> None:
        exclusions = frozenset({Exclusion("a", "b"), Exclusion("c", "*")})
        assert is_excluded("c:anything", exclusions)
        assert not is_excluded("a:c", exclusions)

    def test_intersect_patterns(self) -> None:
        assert Exclusion("g", "*").intersect(Exclusion("*", "y")) == Exclusion("g", "y")
        assert Exclusion("g", "y").intersect(Exclusion("g", "*")) == Exclusion("g", "y")
        assert Exclusion("g", "y").intersect(Exclusion("h", "y")) is None

    def test_common_exclusions_match_only_what_all_sets_match(self) -> None:
        common = common_exclusions([
            frozenset({Exclusion("g", "y"), Exclusion("h", "z")}),
            frozenset({Exclusion("g", "*")}),
        ])
        assert is_excluded("g:y", common)
        assert not is_excluded("g:other", common)
        assert not is_excluded("h:z", common)

    def test_common_exclusions_with_an_empty_set(self) -> None:
        assert common_exclusions([frozenset({Exclusion("*", "*")}), frozenset()]) == frozenset()
        assert common_exclusions([]) == frozenset()


class TestDependencyFingerprint:
    def test_record_is_order_insensitive_for_exclusions(self) -> None:
        c = Coordinate("g", "a", "1.0")
        first = Dependency(c, exclusions=frozenset({Exclusion("x", "y"), Exclusion("p", "q")}))
        second = Dependency(c, exclusions=frozenset({Exclusion("p", "q"), Exclusion("x", "y")}))
        assert first.fingerprint_record() == second.fingerprint_record()

    def test_record_reflects_scope(self) -> None:
        c = Coordinate("g", "a", "1.0")
        assert (
            Dependency(c, Scope.TEST).fingerprint_record()
            != Dependency(c).fingerprint_record()
        )
