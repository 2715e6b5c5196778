from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends

from .core.config import Settings, get_settings
from .core.logging import bind_session_context
from .orchestration.session import SessionRegistry, WorkspaceSession
from .services.toolkit import PDFToolkit


_session_registry_singleton: SessionRegistry | None = None


async def get_app_settings() -> AsyncIterator[Settings]:
    yield get_settings()


def get_session_registry_singleton(settings: Settings) -> SessionRegistry:
    global _session_registry_singleton
    if _session_registry_singleton is None:
        _session_registry_singleton = SessionRegistry(settings)
    return _session_registry_singleton


async def get_session_registry(
    settings: Settings = Depends(get_app_settings),
) -> AsyncIterator[SessionRegistry]:
    yield get_session_registry_singleton(settings)


async def get_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_session_registry),
) -> AsyncIterator[WorkspaceSession]:
    session = registry.get(session_id)
    bind_session_context(session.session_id)
    yield session


async def get_toolkit(
    settings: Settings = Depends(get_app_settings),
) -> AsyncIterator[PDFToolkit]:
    yield PDFToolkit.from_settings(settings.toolkit)
