"""
Pytest configuration and fixtures for the monitor configuration generator.

This module registers Hypothesis profiles and provides shared fixtures.
"""

import pytest
from hypothesis import settings, Verbosity

from tidb_monitor.prometheus.models import RenderParameters
from tidb_monitor.prometheus.patterns import Regexp

# Configure Hypothesis profiles
settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None,
)

settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.verbose,
    deadline=None,
)

settings.register_profile(
    "dev",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)


def pytest_configure(config):
    """Configure pytest with custom settings."""
    # Load the default hypothesis profile
    settings.load_profile("default")


@pytest.fixture
def basic_params():
    """Plaintext parameters for a single namespace without alerting."""
    return RenderParameters(
        namespaces=("ns1",),
        target_regex=Regexp.compile("myapp.*"),
    )


@pytest.fixture
def tls_params():
    """TLS parameters for two namespaces with an Alertmanager."""
    return RenderParameters(
        alertmanager_url="alertmgr:9093",
        namespaces=("ns1", "ns2"),
        target_regex=Regexp.compile("myapp.*"),
        enable_tls=True,
    )
