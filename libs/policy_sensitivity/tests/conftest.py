"""Shared test fixtures for the policy sensitivity library.

This module provides reusable fixtures for testing parameter handling,
confounder augmentation and the sensitivity engine.
"""

import numpy as np
import pandas as pd
import pytest

from policy_sensitivity.data.synthetic import (
    SyntheticPolicyDataGenerator,
    generate_policy,
)
from shared.config import SensitivityConfig


@pytest.fixture
def random_state():
    """Provide a consistent random state for reproducible tests."""
    return 42


@pytest.fixture
def small_sample_size():
    """Small sample size for quick tests."""
    return 100


@pytest.fixture
def synthetic_data_generator(random_state):
    """Provide a configured synthetic data generator."""
    return SyntheticPolicyDataGenerator(random_state=random_state)


@pytest.fixture(scope="session")
def two_group_policy():
    """Policy comparing two groups with roughly 300 test-fold rows."""
    return generate_policy(n_samples=600, groups=("white", "black"), random_state=42)


@pytest.fixture(scope="session")
def three_group_policy():
    """Policy comparing three groups with roughly 450 test-fold rows."""
    return generate_policy(
        n_samples=900, groups=("white", "black", "hispanic"), random_state=7
    )


@pytest.fixture
def sensitize_frame(small_sample_size, random_state):
    """Fitted treatment and response probabilities away from 0 and 1."""
    rng = np.random.RandomState(random_state)
    return pd.DataFrame(
        {
            "p_trt": rng.uniform(0.05, 0.95, small_sample_size),
            "resp_ctl": rng.uniform(0.05, 0.95, small_sample_size),
            "resp_trt": rng.uniform(0.05, 0.95, small_sample_size),
        }
    )


@pytest.fixture
def fast_config():
    """Configuration with a short calibration search."""
    return SensitivityConfig(optim_maxiter=2)
