"""Tests for reducing tagged search results."""

import numpy as np
import pandas as pd
import pytest

from policy_sensitivity.core.base import MalformedTagError
from policy_sensitivity.sensitivity.summary import split_tag, summarize


class TestSplitTag:
    """Tests for tag parsing."""

    def test_simple_tag(self):
        assert split_tag("black_min") == ("black", "min")

    def test_group_with_separator(self):
        """The bound is taken after the last underscore."""
        assert split_tag("native_american_max") == ("native_american", "max")

    @pytest.mark.parametrize("tag", ["black", "black_median", "_min", 3])
    def test_malformed_tags(self, tag):
        with pytest.raises(MalformedTagError):
            split_tag(tag)


class TestSummarize:
    """Tests for pivoting estimates into bounds."""

    def test_min_and_max_per_term(self):
        coefs = pd.DataFrame(
            {
                "term": [
                    "race[T.black]",
                    "race[T.black]",
                    "race[T.hispanic]",
                    "race[T.hispanic]",
                ],
                "estimate": [0.1, 0.9, -0.4, 0.2],
                "tag": ["black_min", "black_max", "hispanic_min", "hispanic_max"],
                "std.error": [0.05, 0.05, 0.07, 0.07],
            }
        )
        result = summarize(coefs).set_index("term")

        assert list(result.columns) == ["min", "max"]
        assert result.loc["race[T.black]", "min"] == 0.1
        assert result.loc["race[T.black]", "max"] == 0.9
        assert result.loc["race[T.hispanic]", "min"] == -0.4
        assert result.loc["race[T.hispanic]", "max"] == 0.2

    def test_missing_bound_is_nan(self):
        coefs = pd.DataFrame(
            {"term": ["g[T.b]"], "estimate": [0.3], "tag": ["b_min"]}
        )
        result = summarize(coefs)
        assert result["min"].iloc[0] == 0.3
        assert np.isnan(result["max"].iloc[0])

    def test_requires_tag_column(self):
        coefs = pd.DataFrame({"term": ["g[T.b]"], "estimate": [0.3]})
        with pytest.raises(MalformedTagError, match="tag"):
            summarize(coefs)

    def test_malformed_tag_in_table(self):
        coefs = pd.DataFrame({"term": ["g[T.b]"], "estimate": [0.3], "tag": ["b"]})
        with pytest.raises(MalformedTagError):
            summarize(coefs)

    def test_repeated_term_and_bound(self):
        """Two estimates for the same term and bound cannot be reduced."""
        coefs = pd.DataFrame(
            {
                "term": ["g[T.b]", "g[T.b]", "g[T.b]"],
                "estimate": [0.1, 0.4, 0.9],
                "tag": ["b_min", "b_min", "b_max"],
            }
        )
        with pytest.raises(MalformedTagError, match=r"g\[T\.b\] min"):
            summarize(coefs)
