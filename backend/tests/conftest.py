import pytest

from jz.observability import get_metrics_collector

from java_trees import TENANT_API


@pytest.fixture(autouse=True)
def _reset_metrics():
    get_metrics_collector().reset()
    yield
    get_metrics_collector().reset()


@pytest.fixture
def tenant_api_source() -> str:
    return TENANT_API
