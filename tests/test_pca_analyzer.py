"""Tests for PCAAnalyzer."""

import numpy as np
import pandas as pd
import pytest

from tabex import Dataset
from tabex.analysis.pca_analyzer import (
    PCAAnalyzer,
    PCAResult,
    covariance_matrix,
    deflate,
    power_iteration,
    principal_components,
)
from tabex.exceptions import InvalidConfigurationError, NoTrainableRowsError


def _oriented(vectors: np.ndarray) -> np.ndarray:
    """Flip each row so its largest absolute entry is positive."""
    signs = np.sign(vectors[np.arange(len(vectors)), np.abs(vectors).argmax(axis=1)])
    return vectors * signs[:, None]


class TestPCAAnalyzer:
    """Test PCAAnalyzer functionality."""

    @pytest.fixture
    def sample_dataset(self) -> Dataset:
        """Create data with a known variance structure."""
        rng = np.random.default_rng(42)
        n_samples = 100
        # First component has high variance
        comp1 = rng.normal(0, 3, n_samples)
        # Second component has medium variance
        comp2 = rng.normal(0, 1, n_samples)
        # Third component has low variance
        comp3 = rng.normal(0, 0.5, n_samples)
        # Independent noise keeps the covariance matrix full rank
        comp4 = rng.normal(0, 0.2, n_samples)

        data = pd.DataFrame(
            {
                "feature1": comp1 + 0.5 * comp2,
                "feature2": comp1 - 0.5 * comp2,
                "feature3": comp2 + 0.3 * comp3,
                "feature4": comp3 + comp4,
                "group": ["a", "b"] * 50,
            },
        )
        return Dataset.from_records(data.to_dict(orient="records"))

    @pytest.fixture
    def features(self, sample_dataset: Dataset) -> np.ndarray:
        return sample_dataset.numeric_rows(["feature1", "feature2", "feature3", "feature4"]).values

    def test_analyzer_creation(self, sample_dataset: Dataset) -> None:
        """Default columns are the numeric ones."""
        analyzer = PCAAnalyzer(sample_dataset)
        assert isinstance(analyzer, PCAAnalyzer)
        result = analyzer.fit().result()
        assert result.features == ("feature1", "feature2", "feature3", "feature4")

    def test_fit_returns_self(self, sample_dataset: Dataset) -> None:
        analyzer = PCAAnalyzer(sample_dataset, rng=0)
        assert analyzer.fit(n_components=2) is analyzer

    def test_result_before_fit_raises_error(self, sample_dataset: Dataset) -> None:
        with pytest.raises(ValueError, match=r"PCA model not fitted"):
            PCAAnalyzer(sample_dataset).result()

    def test_default_component_count(self, sample_dataset: Dataset) -> None:
        result = sample_dataset.make_pca_analyzer(rng=0).fit().result()
        assert result.n_components == sample_dataset.config.n_components
        assert result.pc_names == ["PC1", "PC2"]

    def test_eigenvalues_descending(self, sample_dataset: Dataset) -> None:
        result = sample_dataset.make_pca_analyzer(rng=0).fit(n_components=4).result()
        eigenvalues = np.asarray(result.eigenvalues)
        assert np.all(np.diff(eigenvalues) <= 1e-9)
        assert np.all(eigenvalues >= -1e-9)

    def test_matches_eigendecomposition(self, sample_dataset: Dataset, features: np.ndarray) -> None:
        result = sample_dataset.make_pca_analyzer(rng=0).fit(n_components=3).result()

        centered = features - features.mean(axis=0)
        cov = np.cov(features, rowvar=False)
        values, vectors = np.linalg.eigh(cov)
        order = np.argsort(values)[::-1][:3]

        assert np.allclose(result.eigenvalues, values[order], atol=1e-6)
        assert np.allclose(result.components, _oriented(vectors[:, order].T), atol=1e-6)
        assert result.total_variance == pytest.approx(np.trace(cov))
        assert np.allclose(result.scores, centered @ np.asarray(result.components).T, atol=1e-9)

    def test_components_are_oriented_unit_vectors(self, sample_dataset: Dataset) -> None:
        result = sample_dataset.make_pca_analyzer(rng=4).fit(n_components=3).result()
        components = np.asarray(result.components)
        assert np.allclose(np.linalg.norm(components, axis=1), 1.0)
        assert np.allclose(components @ components.T, np.eye(3), atol=1e-6)
        for vector in components:
            assert vector[np.argmax(np.abs(vector))] > 0

    def test_result_independent_of_seed(self, sample_dataset: Dataset) -> None:
        first = sample_dataset.make_pca_analyzer(rng=1).fit(n_components=2).result()
        second = sample_dataset.make_pca_analyzer(rng=2).fit(n_components=2).result()
        assert np.allclose(first.components, second.components, atol=1e-6)

    def test_explained_variance(self, sample_dataset: Dataset) -> None:
        result = sample_dataset.make_pca_analyzer(rng=0).fit(n_components=4).result()
        assert sum(result.explained_ratio) == pytest.approx(1.0, abs=1e-6)
        assert result.explained_ratio[0] > 0.8

        frame = result.explained_variance_frame()
        assert list(frame.columns) == ["PC", "variance", "explained_ratio", "cumulative_ratio"]
        assert frame.cumulative_ratio.iloc[-1] == pytest.approx(1.0, abs=1e-6)

    def test_scores_frame(self, sample_dataset: Dataset) -> None:
        result = sample_dataset.make_pca_analyzer(rng=0).fit(n_components=2).result()
        scores = result.scores_frame()
        assert scores.shape == (100, 2)
        assert list(scores.columns) == ["PC1", "PC2"]
        assert np.allclose(scores.mean(), 0.0, atol=1e-9)
        assert scores["PC1"].var(ddof=1) == pytest.approx(result.eigenvalues[0], rel=1e-6)

    def test_dropped_rows_are_excluded(self) -> None:
        ds = Dataset.from_records(
            [{"a": 1, "b": 2}, {"a": "?", "b": 1}, {"a": 2, "b": 4}, {"a": 3, "b": 7}, {"a": 4, "b": None}],
        )
        result = ds.make_pca_analyzer(rng=0).fit(n_components=1).result()
        assert result.row_index == (0, 2, 3)
        assert len(result.scores) == 3

    def test_get_loading_vectors(self, sample_dataset: Dataset) -> None:
        analyzer = sample_dataset.make_pca_analyzer(rng=0).fit(n_components=2)
        loadings = analyzer.get_loading_vectors()
        assert loadings.shape == (4, 2)
        assert list(loadings.index) == ["feature1", "feature2", "feature3", "feature4"]

        pc1 = analyzer.get_loading_vectors(component=1)
        assert pc1.name == "PC1"
        # feature1 and feature2 share the dominant component
        assert abs(pc1["feature1"]) > abs(pc1["feature4"])

        with pytest.raises(ValueError, match="not found"):
            analyzer.get_loading_vectors(component=5)
        with pytest.raises(TypeError):
            analyzer.get_loading_vectors(component="1")  # type: ignore[arg-type]

    def test_get_top_loading_features(self, sample_dataset: Dataset) -> None:
        analyzer = sample_dataset.make_pca_analyzer(rng=0).fit(n_components=2)
        top = analyzer.get_top_loading_features(n_components=1, method="max")
        assert set(top[:2]) == {"feature1", "feature2"}
        with pytest.raises(ValueError, match="method must be one of"):
            analyzer.get_top_loading_features(method="bogus")  # type: ignore[arg-type]

    @pytest.mark.parametrize("k", [0, 5])
    def test_invalid_component_count(self, sample_dataset: Dataset, k: int) -> None:
        with pytest.raises(InvalidConfigurationError):
            sample_dataset.make_pca_analyzer().fit(n_components=k)

    def test_no_numeric_columns(self) -> None:
        ds = Dataset.from_records([{"name": "a"}, {"name": "b"}])
        with pytest.raises(InvalidConfigurationError):
            ds.make_pca_analyzer().fit(n_components=1)

    def test_no_valid_rows(self) -> None:
        ds = Dataset.from_records([{"a": 1, "b": None}, {"a": None, "b": 2}])
        with pytest.raises(NoTrainableRowsError):
            ds.make_pca_analyzer(columns=["a", "b"]).fit(n_components=1)

    def test_round_trip(self, sample_dataset: Dataset) -> None:
        result = sample_dataset.make_pca_analyzer(rng=0).fit(n_components=2).result()
        assert PCAResult.from_dict(result.to_dict()) == result


class TestPowerIteration:
    """Test the eigen-solver building blocks."""

    def test_covariance_matches_numpy(self) -> None:
        rng = np.random.default_rng(3)
        x = rng.normal(size=(30, 3))
        centered = x - x.mean(axis=0)
        assert np.allclose(covariance_matrix(centered), np.cov(x, rowvar=False))

    def test_single_row_covariance(self) -> None:
        assert covariance_matrix(np.zeros((1, 2))).tolist() == [[0.0, 0.0], [0.0, 0.0]]

    def test_dominant_eigenvector(self) -> None:
        matrix = np.diag([5.0, 2.0, 1.0])
        vector, value = power_iteration(matrix, iterations=200, rng=0)
        assert value == pytest.approx(5.0)
        assert abs(vector[0]) == pytest.approx(1.0)

    def test_zero_matrix_keeps_vector(self) -> None:
        vector, value = power_iteration(np.zeros((2, 2)), rng=0)
        assert np.linalg.norm(vector) == pytest.approx(1.0)
        assert value == 0.0

    def test_deflate_removes_component(self) -> None:
        matrix = np.diag([3.0, 1.0])
        deflated = deflate(matrix, np.array([1.0, 0.0]), 3.0)
        assert deflated.tolist() == [[0.0, 0.0], [0.0, 1.0]]

    def test_principal_components_of_diagonal(self) -> None:
        rng = np.random.default_rng(9)
        data = rng.normal(size=(500, 2)) * np.array([3.0, 1.0])
        components, eigenvalues, total = principal_components(data - data.mean(axis=0), 2, rng=0)
        assert eigenvalues[0] > eigenvalues[1]
        assert abs(components[0, 0]) > 0.99
        assert eigenvalues.sum() == pytest.approx(total, rel=1e-6)
