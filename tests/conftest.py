import pytest

from spfluent.config import runtime_config
from spfluent.digest import default_digest_store


@pytest.fixture(autouse=True)
def clean_runtime_config():
    """The runtime configuration and the digest store are process wide"""
    runtime_config.reset()
    default_digest_store.clear()
    yield
    runtime_config.reset()
    default_digest_store.clear()
