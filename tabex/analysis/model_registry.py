"""In-memory registry of fitted model artifacts."""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from .kmeans import KMeansResult
from .logistic import LogisticModel
from .pca_analyzer import PCAResult
from .regression import LinearModel


ModelArtifact = LinearModel | LogisticModel | KMeansResult | PCAResult

_KINDS: dict[str, type] = {
    "linear": LinearModel,
    "logistic": LogisticModel,
    "kmeans": KMeansResult,
    "pca": PCAResult,
}


def _kind_of(artifact: ModelArtifact) -> str:
    for kind, cls in _KINDS.items():
        if isinstance(artifact, cls):
            return kind
    raise TypeError(f"Unsupported artifact type {type(artifact).__name__}")


@dataclass
class ModelEntry:
    """Typed model registry entry for reporting workflows."""

    name: str
    artifact: ModelArtifact

    @property
    def kind(self) -> str:
        return _kind_of(self.artifact)

    def headline(self) -> dict[str, Any]:
        """Headline metrics of the artifact, for comparison tables."""
        art = self.artifact
        row: dict[str, Any] = {"model": self.name, "kind": self.kind}
        if isinstance(art, LinearModel):
            row.update(target=art.target, n_features=len(art.features), r2=art.metrics.r2, rmse=art.metrics.rmse)
            if art.validation is not None and art.validation.test is not None:
                row.update(test_r2=art.validation.test.r2, test_rmse=art.validation.test.rmse)
        elif isinstance(art, LogisticModel):
            row.update(target=art.target, n_features=len(art.features), accuracy=art.accuracy, loss=art.final_loss)
        elif isinstance(art, KMeansResult):
            row.update(n_features=len(art.features), k=art.k, inertia=art.inertia)
        else:
            row.update(n_features=len(art.features), n_components=art.n_components, explained=sum(art.explained_ratio))
        return row


@dataclass
class ModelRegistry:
    """Registry to cache fitted models and compare their metrics."""

    models: dict[str, ModelEntry] = field(default_factory=dict)

    def add(self, name: str, artifact: ModelArtifact, *, overwrite: bool = False) -> ModelEntry:
        """Add an artifact under ``name`` (optionally overwriting)."""
        if name in self.models and not overwrite:
            raise KeyError(f"Model '{name}' already exists in registry.")
        _kind_of(artifact)
        entry = ModelEntry(name=name, artifact=artifact)
        self.models[name] = entry
        return entry

    def get(self, name: str) -> ModelArtifact:
        """Retrieve an artifact by name."""
        if name not in self.models:
            raise KeyError(f"Unknown model '{name}'.")
        return self.models[name].artifact

    def remove(self, name: str) -> None:
        self.get(name)
        del self.models[name]

    def compare(self, *, sort_by: str | None = None, ascending: bool = True) -> pd.DataFrame:
        """Return a comparison table for all cached models."""
        rows = [entry.headline() for entry in self.models.values()]
        if not rows:
            return pd.DataFrame()
        df = pd.DataFrame(rows).set_index("model")
        if sort_by is not None and sort_by in df.columns:
            return df.sort_values(sort_by, ascending=ascending)
        return df

    def to_dict(self) -> dict[str, Any]:
        """Serialize every entry as ``{name: {"kind": ..., "artifact": {...}}}``."""
        return {name: {"kind": e.kind, "artifact": e.artifact.to_dict()} for name, e in self.models.items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ModelRegistry":
        registry = cls()
        for name, entry in data.items():
            registry.add(name, _KINDS[entry["kind"]].from_dict(entry["artifact"]))
        return registry

    def __iter__(self) -> Iterator[ModelEntry]:
        return iter(self.models.values())

    def __len__(self) -> int:
        return len(self.models)


__all__ = ["ModelArtifact", "ModelEntry", "ModelRegistry"]
