"""
Ops Case Service - Test Configuration and Fixtures
"""
import os

import httpx
import pytest

os.environ.setdefault("UPSTREAM_BASE_URL", "http://upstream.test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from ops_case_service.config.settings import Settings
from ops_case_service.core.case_manager import CaseManager
from ops_case_service.core.mappers import MappingContext
from ops_case_service.infrastructure.cache import TimeBoxedCache
from ops_case_service.infrastructure.upstream import UpstreamClient

from factories import NOW, TZ, UPSTREAM_URL, FakeUpstream


@pytest.fixture
def tz():
    return TZ


@pytest.fixture
def fixed_clock():
    return lambda: NOW


@pytest.fixture
def mapping_context() -> MappingContext:
    return MappingContext(tz=TZ, organization_name="Smart Services")


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        upstream_base_url=UPSTREAM_URL,
        reference_timezone="Asia/Ho_Chi_Minh",
    )


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def case_manager(upstream, test_settings, fixed_clock) -> CaseManager:
    """Case manager wired to the scripted upstream and a fixed clock."""
    client = UpstreamClient(
        base_url=UPSTREAM_URL,
        page_limit=test_settings.upstream_page_limit,
        transport=httpx.MockTransport(upstream.handler),
    )
    return CaseManager(
        client=client,
        cache=TimeBoxedCache(),
        settings=test_settings,
        clock=fixed_clock,
    )
