"""
Flowcast - API Dependencies
===========================

Shared dependencies for FastAPI endpoints. Every collaborator of the
notification service is a dependency so tests can override it.
"""

import time
from typing import Annotated, Callable

from fastapi import Depends, Request

from flowcast.core.config import Settings, get_settings
from flowcast.core.notify.dispatcher import NotificationDispatcher
from flowcast.core.notify.repository import WorkflowRepository
from flowcast.core.notify.service import NotificationService, create_notification_service


def get_repository(request: Request) -> WorkflowRepository:
    """Workflow lookup installed by the application factory."""
    return request.app.state.repository


def get_dispatcher(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> NotificationDispatcher:
    """
    Dispatcher created during application startup.

    Servers running without lifespan events get one created on first use
    and kept on app.state, so every request shares a single pool.
    """
    state = request.app.state
    if state.dispatcher is None:
        state.dispatcher = NotificationDispatcher.create(
            timeout=settings.WEBHOOK_TIMEOUT_SECONDS
        )
        state.owns_dispatcher = True
    return state.dispatcher


def get_clock() -> Callable[[], float]:
    return time.time


def get_notification_service(
    settings: Annotated[Settings, Depends(get_settings)],
    repository: Annotated[WorkflowRepository, Depends(get_repository)],
    dispatcher: Annotated[NotificationDispatcher, Depends(get_dispatcher)],
    clock: Annotated[Callable[[], float], Depends(get_clock)],
) -> NotificationService:
    return create_notification_service(settings, repository, dispatcher=dispatcher, clock=clock)


# Type aliases for cleaner endpoint signatures
AppSettings = Annotated[Settings, Depends(get_settings)]
Notifier = Annotated[NotificationService, Depends(get_notification_service)]
