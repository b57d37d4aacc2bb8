from __future__ import annotations

import pytest

from jobdash.api import ApiClient
from tests.fakes import BASE, FakeSession, healthy_routes


@pytest.fixture
def session() -> FakeSession:
    return FakeSession(healthy_routes())


@pytest.fixture
def api(session: FakeSession) -> ApiClient:
    return ApiClient(BASE, timeout=1, session=session)
