"""Property-based tests for the version order.

Verifies that ``compare_versions`` is a strict total order:
- Antisymmetry: cmp(a, b) == -cmp(b, a)
- Identity: cmp(a, b) == 0 only when a == b
- Transitivity: a < b and b < c imply a < c
"""
from __future__ import annotations

from hypothesis import assume, given
from hypothesis import strategies as st

from jx.core.dependency import compare_versions, highest_version, version_key


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

numbers = st.integers(min_value=0, max_value=20).map(str)
qualifiers = st.sampled_from([
    "alpha1", "beta2", "M1", "rc1", "RC2", "SNAPSHOT", "Final", "GA", "sp1", "jre", "foo",
])
separators = st.sampled_from([".", "-"])


@st.composite
def versions(draw: st.DrawFn) -> str:
    """Maven-looking versions such as ``1.2``, ``3.0-rc1`` or ``2.0.Final``."""
    parts = draw(st.lists(numbers, min_size=1, max_size=4))
    text = ".".join(parts)
    if draw(st.booleans()):
        text += draw(separators) + draw(qualifiers)
    return text


# ---------------------------------------------------------------------------
# Order laws
# ---------------------------------------------------------------------------


class TestTotalOrder:
    @given(a=versions(), b=versions())
    def test_antisymmetry(self, a: str, b: str) -> None:
        assert compare_versions(a, b) == -compare_versions(b, a)

    @given(a=versions(), b=versions())
    def test_equal_only_when_identical(self, a: str, b: str) -> None:
        assert (compare_versions(a, b) == 0) == (a == b)

    @given(a=versions(), b=versions(), c=versions())
    def test_transitivity(self, a: str, b: str, c: str) -> None:
        low, mid, high = sorted([a, b, c], key=version_key)
        assert compare_versions(low, mid) <= 0
        assert compare_versions(mid, high) <= 0
        assert compare_versions(low, high) <= 0

    @given(vs=st.lists(versions(), min_size=1, max_size=8))
    def test_highest_is_independent_of_order(self, vs: list[str]) -> None:
        assert highest_version(vs) == highest_version(list(reversed(vs)))
        assert all(compare_versions(highest_version(vs), v) >= 0 for v in vs)

    @given(a=versions())
    def test_snapshot_precedes_release(self, a: str) -> None:
        assume(a.replace(".", "").isdigit())
        assert compare_versions(f"{a}-SNAPSHOT", a) == -1
