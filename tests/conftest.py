"""
Shared fixtures: a stub Langflow upstream and a relay app wired to it.
"""
import dataclasses

import pytest
from fastapi.testclient import TestClient

from gap_inspector.api import create_app
from gap_inspector.config import Settings
from tests.stubs import API_KEY, FLOW_ID, StubUpstream


@pytest.fixture
def settings(tmp_path):
    return Settings(
        langflow_base_url="http://langflow.test",
        api_key=API_KEY,
        flow_id=FLOW_ID,
        upload_dir=tmp_path / "uploads",
        keepalive_interval=30.0,
    )


@pytest.fixture
def upstream():
    return StubUpstream()


@pytest.fixture
def make_client(upstream):
    def _make(settings, **overrides):
        if overrides:
            settings = dataclasses.replace(settings, **overrides)
        return TestClient(create_app(settings, transport=upstream.transport))

    return _make


@pytest.fixture
def client(make_client, settings):
    return make_client(settings)
