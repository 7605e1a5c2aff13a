"""
Pytest fixtures for forecast_scoring tests.
"""

import pytest
import pandas as pd
import numpy as np
from pathlib import Path
import sys

# Add package to path
sys.path.insert(0, str(Path(__file__).parent.parent))

QUANTILE_LEVELS = [0.05, 0.25, 0.5, 0.75, 0.95]


@pytest.fixture(scope="session")
def point_df():
    """Point forecasts for two models and two locations."""
    return pd.DataFrame({
        "model": ["A", "A", "B", "B"],
        "location": ["x", "y", "x", "y"],
        "observed": [10.0, 20.0, 10.0, 20.0],
        "predicted": [12.0, 18.0, 10.0, 25.0],
    })


@pytest.fixture(scope="session")
def quantile_df():
    """Quantile forecasts: 2 models x 2 locations x 5 quantile levels."""
    rows = []
    offsets = {"A": 0.0, "B": 5.0}
    observed = {"x": 10.0, "y": 30.0}
    spread = [-4.0, -1.0, 0.0, 1.0, 4.0]
    for model, offset in offsets.items():
        for location, obs in observed.items():
            for level, delta in zip(QUANTILE_LEVELS, spread):
                rows.append({
                    "model": model,
                    "location": location,
                    "observed": obs,
                    "predicted": obs + offset + delta,
                    "quantile_level": level,
                })
    # Shuffle so scoring has to sort by quantile level itself
    return pd.DataFrame(rows).sample(frac=1, random_state=1).reset_index(drop=True)


@pytest.fixture(scope="session")
def sample_df():
    """Sample forecasts: 2 models x 2 locations x 50 samples."""
    rng = np.random.default_rng(42)
    rows = []
    for model, scale in [("A", 1.0), ("B", 3.0)]:
        for location, obs in [("x", 5.0), ("y", 8.0)]:
            draws = rng.normal(loc=obs, scale=scale, size=50)
            for sample_id, draw in enumerate(draws, start=1):
                rows.append({
                    "model": model,
                    "location": location,
                    "observed": obs,
                    "predicted": draw,
                    "sample_id": sample_id,
                })
    return pd.DataFrame(rows)


@pytest.fixture(scope="session")
def binary_df():
    """Binary forecasts with a two-level categorical outcome."""
    return pd.DataFrame({
        "model": ["A", "A", "B", "B"],
        "event": ["e1", "e2", "e1", "e2"],
        "observed": pd.Categorical(["no", "yes", "no", "yes"], categories=["no", "yes"]),
        "predicted": [0.2, 0.9, 0.5, 0.4],
    })
