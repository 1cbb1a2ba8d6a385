"""Tests for CorrelationAnalyzer."""

import numpy as np
import pytest
from scipy import stats

from tabex import Dataset
from tabex.analysis.correlation_analyzer import CorrelationAnalyzer, CorrelationResult, paired_values, pearson


class TestPearson:
    """Test the Pearson coefficient."""

    def test_matches_scipy(self) -> None:
        rng = np.random.default_rng(7)
        a = rng.normal(size=40)
        b = 0.5 * a + rng.normal(size=40)
        assert pearson(a, b) == pytest.approx(stats.pearsonr(a, b)[0])

    def test_perfect_correlations(self) -> None:
        assert pearson([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)
        assert pearson([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)

    def test_constant_input_is_zero(self) -> None:
        assert pearson([1, 1, 1], [1, 2, 3]) == 0.0

    def test_paired_values_drop_incomplete_rows(self, people_dataset: Dataset) -> None:
        a, b = paired_values(people_dataset.column("age"), people_dataset.column("salary"))
        assert len(a) == len(b) == 4


class TestCorrelationAnalyzer:
    """Test CorrelationAnalyzer functionality."""

    @pytest.fixture
    def sample_dataset(self) -> Dataset:
        """Perfectly related columns plus a noisy one."""
        return Dataset.from_records(
            [
                {"feature1": 1.0, "feature2": 2.0, "feature3": 5.0, "target": 10.0, "note": "x"},
                {"feature1": 2.0, "feature2": 4.0, "feature3": 4.0, "target": 15.0, "note": "y"},
                {"feature1": 3.0, "feature2": 6.0, "feature3": 3.0, "target": 20.0, "note": "x"},
                {"feature1": 4.0, "feature2": 8.0, "feature3": 2.0, "target": 25.0, "note": "z"},
                {"feature1": 5.0, "feature2": 10.0, "feature3": 1.0, "target": 30.0, "note": "y"},
            ],
        )

    def test_analyzer_creation(self, sample_dataset: Dataset) -> None:
        analyzer = sample_dataset.make_correlation_analyzer()
        assert isinstance(analyzer, CorrelationAnalyzer)

    def test_get_correlation_matrix(self, sample_dataset: Dataset) -> None:
        corr_matrix = CorrelationAnalyzer(sample_dataset).get_correlation_matrix()

        # Only numeric columns take part
        assert corr_matrix.shape == (4, 4)
        assert np.allclose(np.diag(corr_matrix), 1.0)
        assert np.allclose(corr_matrix, corr_matrix.T)
        assert np.isclose(corr_matrix.loc["feature1", "feature2"], 1.0)
        assert np.isclose(corr_matrix.loc["feature1", "feature3"], -1.0)

    def test_get_top_correlated_pairs(self, sample_dataset: Dataset) -> None:
        top_pairs = CorrelationAnalyzer(sample_dataset).get_top_correlated_pairs(n=3)
        assert len(top_pairs) == 3
        assert list(top_pairs.columns) == ["feature_a", "feature_b", "correlation", "abs_correlation", "pair"]
        assert (top_pairs.abs_correlation.diff().dropna() <= 0).all()

    def test_all_pairs(self, sample_dataset: Dataset) -> None:
        pairs = CorrelationAnalyzer(sample_dataset).get_top_correlated_pairs(n=None)
        assert len(pairs) == 6
        assert "feature1 vs feature2" in pairs.pair.tolist()

    def test_fit_and_result(self, sample_dataset: Dataset) -> None:
        result = sample_dataset.make_correlation_analyzer().fit().result()
        assert isinstance(result, CorrelationResult)
        assert result.n_pairs.loc["feature1", "target"] == 5
        assert len(result.strong_pairs(0.9)) == 6

    def test_result_before_fit_raises_error(self, sample_dataset: Dataset) -> None:
        with pytest.raises(ValueError, match=r"Call fit\(\) first"):
            CorrelationAnalyzer(sample_dataset).result()

    def test_pairwise_complete_rows(self) -> None:
        ds = Dataset.from_records(
            [
                {"a": 1, "b": 2, "c": None},
                {"a": 2, "b": 4, "c": 1},
                {"a": 3, "b": "?", "c": 2},
                {"a": 4, "b": 8, "c": 3},
                {"a": 5, "b": 10, "c": 4},
            ],
        )
        result = CorrelationAnalyzer(ds, min_pairs=3).fit().result()
        assert result.n_pairs.loc["a", "b"] == 4
        assert result.n_pairs.loc["a", "c"] == 4
        assert result.n_pairs.loc["b", "c"] == 3
        assert result.matrix.loc["a", "b"] == pytest.approx(1.0)

    def test_too_few_pairs_is_nan(self) -> None:
        ds = Dataset.from_records([{"a": 1, "b": 2}, {"a": 2, "b": 3}])
        result = ds.make_correlation_analyzer().fit().result()
        assert np.isnan(result.matrix.loc["a", "b"])
        assert result.feature_pairs.empty

    def test_single_column(self) -> None:
        ds = Dataset.from_records([{"a": 1}, {"a": 2}, {"a": 3}])
        pairs = CorrelationAnalyzer(ds).get_top_correlated_pairs()
        assert pairs.empty
        assert list(pairs.columns) == ["feature_a", "feature_b", "correlation", "abs_correlation", "pair"]

    def test_explicit_columns(self, sample_dataset: Dataset) -> None:
        matrix = sample_dataset.make_correlation_analyzer(columns=["feature1", "target"]).get_correlation_matrix()
        assert list(matrix.columns) == ["feature1", "target"]
