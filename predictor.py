"""
predictor.py - Predictor Capability and Reference Model

The simulation only depends on the Predictor protocol:
    predict(vector) -> one score per outcome slot
    incremental_fit(examples) -> truthy on success (may be awaitable)

DensePredictor satisfies it with a scikit-learn MLPClassifier trained on
multi-hot targets (one sigmoid output per ball value): fit() for full
training with early stopping, partial_fit() for incremental updates.
"""

import warnings
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

import numpy as np
from sklearn.exceptions import ConvergenceWarning
from sklearn.neural_network import MLPClassifier

from receipts import ContractViolation

# =============================================================================
# CONSTANTS
# =============================================================================

INCREMENTAL_BATCH_SIZE = 32
UNTRAINED_SCORE = 0.5  # every value equally likely before the first fit

Example = Tuple[Sequence[float], Sequence[float]]


# =============================================================================
# CAPABILITY
# =============================================================================

@runtime_checkable
class Predictor(Protocol):
    """Opaque stateful model consumed by the simulation engine."""

    def predict(self, vector: Sequence[float]) -> Sequence[float]:
        ...

    def incremental_fit(self, examples: Sequence[Example]) -> Any:
        ...


@dataclass(frozen=True)
class TrainingConfig:
    """Training hyperparameters (immutable)."""
    epochs: int = 50
    batch_size: int = 32
    validation_split: float = 0.2
    early_stopping_patience: int = 5
    hidden_units: int = 64
    learning_rate: float = 0.001
    incremental_epochs: int = 1
    seed: int = 42


# =============================================================================
# REFERENCE MODEL
# =============================================================================

class DensePredictor:
    """One ReLU hidden layer, adam, multi-label outputs."""

    def __init__(self, input_width: int, output_width: int = 25,
                 config: Optional[TrainingConfig] = None):
        if input_width < 1 or output_width < 1:
            raise ContractViolation(
                f"Widths must be positive, got input={input_width} output={output_width}"
            )
        self.config = config or TrainingConfig()
        self.input_width = input_width
        self.output_width = output_width
        self.classes = np.arange(output_width)
        self.updates = 0

        cfg = self.config
        self.model = MLPClassifier(
            hidden_layer_sizes=(cfg.hidden_units,),
            activation="relu",
            solver="adam",
            learning_rate_init=cfg.learning_rate,
            batch_size=cfg.batch_size,
            max_iter=max(1, cfg.epochs),
            n_iter_no_change=cfg.early_stopping_patience,
            random_state=cfg.seed,
        )

    @property
    def trained(self) -> bool:
        return hasattr(self.model, "coefs_")

    # -------------------------------------------------------------------------
    # Inference
    # -------------------------------------------------------------------------

    def predict(self, vector: Sequence[float]) -> np.ndarray:
        x = np.asarray(vector, dtype=np.float64)
        if x.shape != (self.input_width,):
            raise ContractViolation(
                f"Predictor expects width {self.input_width}, got shape {x.shape}"
            )
        if not self.trained:
            return np.full(self.output_width, UNTRAINED_SCORE)
        return self.model.predict_proba(x[None, :])[0]

    # -------------------------------------------------------------------------
    # Training
    # -------------------------------------------------------------------------

    def _as_arrays(self, examples: Sequence[Example]) -> Tuple[np.ndarray, np.ndarray]:
        if len(examples) == 0:
            raise ContractViolation("No training examples supplied")
        x = np.asarray([e[0] for e in examples], dtype=np.float64)
        y = np.asarray([e[1] for e in examples], dtype=np.float64)
        if x.ndim != 2 or x.shape[1] != self.input_width:
            raise ContractViolation(
                f"Training inputs must have width {self.input_width}, got shape {x.shape}"
            )
        if y.ndim != 2 or y.shape[1] != self.output_width:
            raise ContractViolation(
                f"Training targets must have width {self.output_width}, got shape {y.shape}"
            )
        return x, y.astype(np.int64)

    def fit(self, examples: Sequence[Example]) -> Dict[str, List[float]]:
        """
        Full training with early stopping on a held-out split.

        Early stopping is skipped when the split would leave no validation
        or no training rows.

        Returns:
            dict with "loss" per completed epoch and "val_score" per epoch
            (empty without early stopping)
        """
        x, y = self._as_arrays(examples)
        cfg = self.config
        early = 0.0 < cfg.validation_split < 1.0 and len(x) >= 2
        params = {
            "early_stopping": early,
            "batch_size": min(cfg.batch_size, len(x)),
            "max_iter": max(1, cfg.epochs),
        }
        if early:
            params["validation_fraction"] = cfg.validation_split
        self.model.set_params(**params)

        with warnings.catch_warnings():
            warnings.simplefilter("ignore", category=ConvergenceWarning)
            self.model.fit(x, y)
        self.updates += 1
        return {
            "loss": list(self.model.loss_curve_),
            "val_score": list(getattr(self.model, "validation_scores_", None) or []),
        }

    def incremental_fit(self, examples: Sequence[Example]) -> bool:
        """Short update on freshly observed rounds."""
        x, y = self._as_arrays(examples)
        self.model.set_params(batch_size=min(INCREMENTAL_BATCH_SIZE, len(x)))
        for _ in range(self.config.incremental_epochs):
            self.model.partial_fit(x, y, classes=self.classes)
            self.updates += 1
        return True


__all__ = [
    "Predictor",
    "TrainingConfig",
    "DensePredictor",
    "Example",
]
