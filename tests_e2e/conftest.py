"""
Shared pytest fixtures for the kube-rbac-proxy end-to-end scenarios.

The scenarios need a reachable cluster. Use --kubeconfig or KUBECONFIG to
select one; without a cluster every test in this directory is skipped.
"""

import dataclasses
import os
import sys
from pathlib import Path

import pytest
import yaml

BASE_DIR = Path(__file__).parent.absolute()
sys.path.insert(0, str(BASE_DIR.parent))

from kubescenario import Suite
from kubescenario.functions import Consts, Functions
from utils import generate_client_certificates


def pytest_addoption(parser):
    parser.addoption("--kubeconfig", action="store", default=None,
                     help="kubeconfig of the cluster the scenarios run against")


@pytest.fixture(scope="session")
def suite(request) -> Suite:
    """
    Suite configured from KUBESCENARIO_* variables and the optional YAML config,
    with generated client certificate material as template variables.
    """
    kubeconfig = request.config.getoption("--kubeconfig", default=None)
    if kubeconfig:
        os.environ["KUBESCENARIO_KUBECONFIG"] = kubeconfig
    os.environ.setdefault("KUBESCENARIO_MANIFEST_PATH", str(BASE_DIR / "manifests"))
    Consts.reset()

    yaml_config = None
    if os.path.exists(Consts.config_file):
        yaml_config = yaml.safe_load(Functions.load(Consts.config_file))

    try:
        base = Suite.from_env(yaml_config=yaml_config)
        base.client.list_pods(base.namespace, "app=kube-rbac-proxy")
    except Exception as e:
        pytest.skip(f"No reachable Kubernetes cluster: {e}")

    template_vars = dict(base.template_vars)
    template_vars.update(generate_client_certificates())
    template_vars["client_certificate_secret"] = base.client_certificate_secret
    return dataclasses.replace(base, template_vars=template_vars)


@pytest.fixture
def namespace(suite) -> str:
    return suite.namespace
