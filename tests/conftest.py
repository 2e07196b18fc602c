"""
Pytest configuration and fixtures for kubescenario unit tests.

No cluster is needed: the Kubernetes API is replaced by MagicMock doubles.
"""

import os
import sys
from unittest.mock import MagicMock

import pytest

from helpers import FakeClock

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

_SUITE_ENV_VARS = [
    "KUBESCENARIO_BASE_PATH",
    "KUBESCENARIO_CONFIG",
    "KUBESCENARIO_MANIFEST_PATH",
    "KUBESCENARIO_NAMESPACE",
    "KUBESCENARIO_KUBECONFIG",
    "KUBECONFIG",
    "KUBESCENARIO_PROBE_IMAGE",
    "KUBESCENARIO_CLIENT_CERT_SECRET",
    "KUBESCENARIO_POLL_INTERVAL",
    "KUBESCENARIO_POLL_TIMEOUT",
    "KUBESCENARIO_PROBE_TIMEOUT",
    "SCENARIO_LOG_LEVEL",
    "PROBE_LOG_LEVEL",
    "CLUSTER_LOG_LEVEL",
]


def _clear_env():
    for var in _SUITE_ENV_VARS:
        os.environ.pop(var, None)
    for var in [key for key in os.environ if key.startswith("KUBESCENARIO_VAR_")]:
        os.environ.pop(var, None)


@pytest.fixture(scope="function", autouse=True)
def reset_env():
    """
    Reset Consts and suite environment variables before and after each test,
    so values written by SuiteEnv._yaml_to_env do not bleed across tests.
    """
    from kubescenario.functions import Consts
    Consts.reset()
    _clear_env()
    yield
    Consts.reset()
    _clear_env()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cluster():
    return MagicMock()


@pytest.fixture
def suite(cluster):
    from kubescenario import Suite
    return Suite(client=cluster, namespace="e2e", poll_interval=0.01, poll_timeout=0.05, probe_timeout=0.05)


@pytest.fixture
def context(suite):
    from kubescenario import ScenarioContext
    return ScenarioContext(suite, "unit")