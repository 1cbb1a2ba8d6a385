"""Tests for gradient-descent logistic regression."""

import math

import numpy as np
import pytest

from tabex import Dataset
from tabex.analysis.logistic import (
    LogisticModel,
    LogisticRegressionTrainer,
    binary_cross_entropy,
    binary_label_mapping,
    encode_labels,
)
from tabex.exceptions import InvalidConfigurationError, NoTrainableRowsError


@pytest.fixture
def separable_dataset() -> Dataset:
    """Pass/fail outcome that flips at a score of 0, labelled with strings."""
    scores = [-4.5, -4, -3.5, -3, -2.5, -2, -1.5, -1, -0.5, 0.5, 1, 1.5, 2, 2.5, 3, 3.5, 4, 4.5]
    return Dataset.from_records(
        [{"score": s, "passed": "fail" if s < 0 else "pass"} for s in scores],
    )


class TestLabelMapping:
    """Test target label mapping rules."""

    def test_two_strings_first_seen_order(self) -> None:
        assert binary_label_mapping(["no", "yes", "no", None]) == {"no": 0, "yes": 1}
        assert binary_label_mapping(["yes", "no"]) == {"yes": 0, "no": 1}

    @pytest.mark.parametrize("values", [[1, 0, 1], ["1", "0"], [0.0, 1.0], [True, False]])
    def test_literal_binary_keeps_identity(self, values) -> None:
        assert binary_label_mapping(values) is None

    def test_two_non_binary_numbers_are_mapped(self) -> None:
        assert binary_label_mapping([2, 1, 2]) == {"2": 0, "1": 1}

    def test_more_than_two_values(self) -> None:
        assert binary_label_mapping(["a", "b", "c"]) is None

    def test_encode_literal_labels(self) -> None:
        encoded = encode_labels([0, 1, "1", 2, "x", None], None)
        assert encoded[:3].tolist() == [0.0, 1.0, 1.0]
        assert np.isnan(encoded[3:]).all()

    def test_encode_with_mapping(self) -> None:
        encoded = encode_labels(["no", "yes", "maybe"], {"no": 0, "yes": 1})
        assert encoded[:2].tolist() == [0.0, 1.0]
        assert np.isnan(encoded[2])


def test_cross_entropy_at_half_probability() -> None:
    loss = binary_cross_entropy(np.array([0.0, 1.0]), np.array([0.5, 0.5]))
    assert loss == pytest.approx(math.log(2))


def test_cross_entropy_is_finite_at_extremes() -> None:
    loss = binary_cross_entropy(np.array([1.0]), np.array([0.0]))
    assert math.isfinite(loss)
    assert loss == pytest.approx(-math.log(1e-12))


class TestLogisticRegressionTrainer:
    """Test LogisticRegressionTrainer functionality."""

    def test_result_before_fit_raises_error(self, separable_dataset: Dataset) -> None:
        with pytest.raises(ValueError, match=r"Model not trained"):
            LogisticRegressionTrainer(separable_dataset, ["score"], "passed").result()

    def test_separable_data(self, separable_dataset: Dataset) -> None:
        model = separable_dataset.make_logistic_trainer(["score"], "passed").fit().result()
        assert model.accuracy >= 0.9
        assert model.label_mapping == {"fail": 0, "pass": 1}
        assert model.weights[0] > 0
        assert model.n_obs == 18
        assert model.n_excluded == 0

    def test_loss_history(self, separable_dataset: Dataset) -> None:
        model = separable_dataset.make_logistic_trainer(["score"], "passed").fit(epochs=200).result()
        assert len(model.loss_history) == 200
        # zero-initialized weights predict 0.5 everywhere
        assert model.loss_history[0] == pytest.approx(math.log(2))
        assert model.final_loss < model.loss_history[0]

    def test_predict_and_decode(self, separable_dataset: Dataset) -> None:
        model = separable_dataset.make_logistic_trainer(["score"], "passed").fit(epochs=2000).result()
        codes = model.predict([[-3.0], [3.0]])
        assert codes.tolist() == [0, 1]
        assert model.decode(codes) == ["fail", "pass"]
        proba = model.predict_proba([[-3.0], [3.0]])
        assert proba[0] < 0.5 < proba[1]

    def test_literal_target_has_no_mapping(self) -> None:
        ds = Dataset.from_records([{"x": x, "y": int(x > 0)} for x in (-3, -2, -1, 1, 2, 3)])
        model = ds.make_logistic_trainer(["x"], "y").fit().result()
        assert model.label_mapping is None
        assert model.decode([1, 0]) == [1, 0]
        assert model.accuracy == 1.0

    def test_numeric_labels_decode_as_text(self) -> None:
        ds = Dataset.from_records([{"x": x, "y": 2 if x > 0 else 1} for x in (-3, -2, -1, 1, 2, 3)])
        model = ds.make_logistic_trainer(["x"], "y").fit().result()
        assert model.label_mapping == {"1": 0, "2": 1}
        assert model.decode([0, 1]) == ["1", "2"]

    def test_rows_with_other_labels_are_dropped(self) -> None:
        ds = Dataset.from_records(
            [{"x": -2, "y": 0}, {"x": -1, "y": 0}, {"x": 1, "y": 1}, {"x": 2, "y": 1}, {"x": 3, "y": 2}],
        )
        model = ds.make_logistic_trainer(["x"], "y").fit().result()
        assert model.n_obs == 4
        assert model.n_excluded == 1

    def test_unparsable_features_are_dropped(self, separable_dataset: Dataset) -> None:
        records = [*separable_dataset.to_records(), {"score": "n/a", "passed": "pass"}]
        model = Dataset.from_records(records).make_logistic_trainer(["score"], "passed").fit().result()
        assert model.n_obs == 18
        assert model.n_excluded == 1

    def test_no_trainable_rows(self) -> None:
        ds = Dataset.from_records([{"x": 1, "y": "a"}, {"x": 2, "y": "b"}, {"x": 3, "y": "c"}])
        with pytest.raises(NoTrainableRowsError) as excinfo:
            ds.make_logistic_trainer(["x"], "y").fit()
        assert excinfo.value.details["stage"] == "logistic_regression"
        assert excinfo.value.details["unlabeled_rows"] == 3

    def test_weight_decay_applies_to_bias(self) -> None:
        """With a constant-zero feature only the bias moves; decay keeps it bounded."""
        ds = Dataset.from_records([{"x": 0, "y": 1} for _ in range(10)])
        decayed = ds.make_logistic_trainer(["x"], "y").fit(epochs=5000, l2_penalty=0.1).result()
        free = ds.make_logistic_trainer(["x"], "y").fit(epochs=5000, l2_penalty=0.0).result()
        # fixed point of sigmoid(b) - 1 + 0.1 * b = 0 is near b = 1.6
        assert decayed.bias == pytest.approx(1.6, abs=0.1)
        assert free.bias > decayed.bias + 1.0
        assert decayed.weights == (0.0,)

    def test_invalid_epochs(self, separable_dataset: Dataset) -> None:
        with pytest.raises(InvalidConfigurationError):
            separable_dataset.make_logistic_trainer(["score"], "passed").fit(epochs=0)

    def test_predictions_frame(self, separable_dataset: Dataset) -> None:
        trainer = separable_dataset.make_logistic_trainer(["score"], "passed").fit()
        frame = trainer.predictions()
        assert list(frame.columns) == ["label", "probability", "predicted"]
        assert len(frame) == 18
        assert (frame.label == frame.predicted).mean() == pytest.approx(trainer.result().accuracy)

    def test_round_trip(self, separable_dataset: Dataset) -> None:
        model = separable_dataset.make_logistic_trainer(["score"], "passed").fit(epochs=50).result()
        data = model.to_dict()
        assert data["label_mapping"] == {"fail": 0, "pass": 1}
        assert LogisticModel.from_dict(data) == model
