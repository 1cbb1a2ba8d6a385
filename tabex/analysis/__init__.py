"""Analysis modules: statistics, linear algebra and model fitting."""

from .correlation_analyzer import CorrelationAnalyzer, CorrelationResult, pearson
from .descriptive import (
    CategoricalSummary,
    DescriptiveAnalyzer,
    Histogram,
    NumericSummary,
    SummaryResult,
    histogram,
    summarize_column,
)
from .kmeans import KMeansAnalyzer, KMeansResult
from .linalg import inverse, mat_mul, transpose
from .logistic import LogisticModel, LogisticRegressionTrainer
from .model_registry import ModelEntry, ModelRegistry
from .pca_analyzer import PCAAnalyzer, PCAResult, covariance_matrix, power_iteration, principal_components
from .regression import FitMetrics, LinearModel, LinearRegressionAnalyzer, ValidationResult, evaluate
from .suggestions import Suggestion, SuggestionAnalyzer, SuggestionKind, SuggestionResult, generate_suggestions


__all__ = [
    "CategoricalSummary",
    "CorrelationAnalyzer",
    "CorrelationResult",
    "DescriptiveAnalyzer",
    "FitMetrics",
    "Histogram",
    "KMeansAnalyzer",
    "KMeansResult",
    "LinearModel",
    "LinearRegressionAnalyzer",
    "LogisticModel",
    "LogisticRegressionTrainer",
    "ModelEntry",
    "ModelRegistry",
    "NumericSummary",
    "PCAAnalyzer",
    "PCAResult",
    "Suggestion",
    "SuggestionAnalyzer",
    "SuggestionKind",
    "SuggestionResult",
    "SummaryResult",
    "ValidationResult",
    "covariance_matrix",
    "evaluate",
    "generate_suggestions",
    "histogram",
    "inverse",
    "mat_mul",
    "pearson",
    "power_iteration",
    "principal_components",
    "summarize_column",
    "transpose",
]
