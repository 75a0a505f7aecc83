"""FastAPI dependencies shared by the routers."""

import logging
from typing import Optional

from ops_case_service.config import settings
from ops_case_service.core.case_manager import CaseManager
from ops_case_service.infrastructure.cache import TimeBoxedCache
from ops_case_service.infrastructure.upstream import UpstreamClient

logger = logging.getLogger(__name__)

# Global singleton manager (the reference cache must outlive single requests)
_case_manager: Optional[CaseManager] = None


def get_case_manager() -> CaseManager:
    """Dependency to get the process-wide case manager."""
    global _case_manager
    if _case_manager is None:
        _case_manager = CaseManager(
            client=UpstreamClient.from_settings(settings),
            cache=TimeBoxedCache(),
            settings=settings,
        )
        logger.info(f"Case manager bound to upstream {settings.upstream_base_url}")
    return _case_manager


async def close_case_manager() -> None:
    """Close the upstream client of the singleton manager, if one was created."""
    global _case_manager
    if _case_manager is not None:
        await _case_manager.client.close()
        _case_manager = None
