"""Test configuration for tabex."""

import numpy as np
import pytest
from loguru import logger

from tabex import Dataset
from tabex.utils import configure_logging, disable_logging


@pytest.fixture
def people_dataset() -> Dataset:
    """Small mixed-type dataset with a missing age and a categorical column."""
    return Dataset.from_records(
        [
            {"age": "34", "salary": "85000", "department": "Engineering"},
            {"age": "28", "salary": "56000", "department": "Product"},
            {"age": "NaN", "salary": "48000", "department": "Support"},
            {"age": "45", "salary": "99000", "department": "Engineering"},
            {"age": "39", "salary": "72000", "department": "Product"},
        ],
    )


@pytest.fixture
def linear_dataset() -> Dataset:
    """Noise-free ``y = 2x + 1`` over ``x = 1..20``."""
    return Dataset.from_records([{"x": x, "y": 2 * x + 1} for x in range(1, 21)])


@pytest.fixture
def noisy_dataset() -> Dataset:
    """Two features with Gaussian noise, fixed seed."""
    rng = np.random.default_rng(42)
    x1 = rng.normal(0, 1, 60)
    x2 = rng.normal(5, 2, 60)
    y = 3.0 + 1.5 * x1 - 0.7 * x2 + rng.normal(0, 0.3, 60)
    return Dataset.from_records(
        [{"x1": a, "x2": b, "y": c} for a, b, c in zip(x1, x2, y, strict=True)],
    )


@pytest.fixture
def captured_logs():
    """Collect formatted tabex log records while the test runs."""
    captured: list[str] = []
    handler_id = configure_logging(level="DEBUG", sink=lambda msg: captured.append(str(msg)))
    yield captured
    logger.remove(handler_id)
    disable_logging()
