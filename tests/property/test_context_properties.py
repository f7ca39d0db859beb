"""Property-based tests for context lineage and cancellation."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from e2ekit.context import Context, with_cancel

keys = st.sampled_from(["ns", "cluster", "pod", "image", "replicas"])
pairs = st.lists(st.tuples(keys, st.integers()), max_size=20)


@pytest.mark.property
@pytest.mark.unit
class TestContextProperties:
    @given(pairs=pairs)
    def test_lookup_sees_the_latest_value(self, pairs):
        ctx = Context.background()
        expected = {}
        for key, value in pairs:
            ctx = ctx.with_value(key, value)
            expected[key] = value
        for key in ["ns", "cluster", "pod", "image", "replicas"]:
            assert ctx.value(key, "missing") == expected.get(key, "missing")

    @given(before=pairs, after=pairs)
    def test_children_never_change_the_parent(self, before, after):
        parent = Context.background()
        for key, value in before:
            parent = parent.with_value(key, value)
        snapshot = {k: parent.value(k, "missing") for k, _ in before + after}

        child = parent
        for key, value in after:
            child = child.with_value(key, value)

        assert {k: parent.value(k, "missing") for k in snapshot} == snapshot

    @given(depth=st.integers(min_value=1, max_value=8), data=st.data())
    def test_cancel_reaches_descendants_only(self, depth, data):
        chain = []
        cancels = []
        ctx = Context.background()
        for i in range(depth):
            ctx, cancel = with_cancel(ctx.with_value("level", i))
            chain.append(ctx)
            cancels.append(cancel)

        at = data.draw(st.integers(min_value=0, max_value=depth - 1))
        cancels[at]()

        assert [c.done() for c in chain] == [i >= at for i in range(depth)]

    @given(branches=st.integers(min_value=1, max_value=6))
    def test_forks_are_isolated(self, branches):
        parent = Context.background().with_value("ns", "shared")
        forks = [parent.fork().with_value("branch", i) for i in range(branches)]
        for i, fork in enumerate(forks):
            assert fork.value("branch") == i
            assert fork.value("ns") == "shared"
        assert parent.value("branch") is None
