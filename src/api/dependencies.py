"""
FastAPI dependency injection for engine services.
"""

from typing import Annotated

from fastapi import Depends, Request

from src.notify.dispatcher import WebhookDispatcher
from src.store.sqlite_store import InterventionStore
from src.workflow.controller import InterventionWorkflow


def get_workflow(request: Request) -> InterventionWorkflow:
    """Get InterventionWorkflow singleton from lifespan state."""
    return request.app.state.workflow


def get_store(request: Request) -> InterventionStore:
    """Get InterventionStore singleton from lifespan state."""
    return request.app.state.store


def get_dispatcher(request: Request) -> WebhookDispatcher:
    """Get the notification dispatcher from lifespan state."""
    return request.app.state.dispatcher


WorkflowDep = Annotated[InterventionWorkflow, Depends(get_workflow)]
StoreDep = Annotated[InterventionStore, Depends(get_store)]
DispatcherDep = Annotated[WebhookDispatcher, Depends(get_dispatcher)]
