"""Property-based tests for duration formatting."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from e2ekit.time import InvalidDurationError, delta_str


@pytest.mark.property
@pytest.mark.unit
class TestDeltaProperties:
    @given(secs=st.floats(min_value=0, max_value=10_000_000, allow_nan=False))
    def test_never_empty(self, secs):
        assert delta_str(secs) != ""

    @given(secs=st.floats(max_value=-1e-9, allow_infinity=False, allow_nan=False))
    def test_negative_rejected(self, secs):
        with pytest.raises(InvalidDurationError):
            delta_str(secs)

    @given(secs=st.integers(min_value=60, max_value=86_399))
    def test_minutes_format(self, secs):
        hours, rest = divmod(secs, 3600)
        minutes, seconds = divmod(rest, 60)
        expected = f"{hours}h" if hours else ""
        assert delta_str(secs) == f"{expected}{minutes}m{seconds}s"
