"""
Dependency injection setup for the application.
Provides FastAPI dependencies for the relayer SDK loader.
"""

from typing import Annotated

from fastapi import Depends, Request

from relayer_loader.loader.resource_loader import ResourceLoader


def get_loader(request: Request) -> ResourceLoader:
    """Return the loader attached to the running app."""
    return request.app.state.loader


# FastAPI dependency type annotations
LoaderDep = Annotated[ResourceLoader, Depends(get_loader)]
