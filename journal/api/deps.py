"""
API Dependencies

FastAPI dependencies shared by the v1 routers.
"""

from fastapi import Request

from journal.core.resources import ResourceHolder, Resources


def get_holder(request: Request) -> ResourceHolder:
    """FastAPI dependency — the application's resource holder."""
    return request.app.state.holder


def get_resources(request: Request) -> Resources:
    """
    FastAPI dependency — the live resource bundle.

    Read once per request, so a reload mid-request never mixes bundles.
    """
    return get_holder(request).current
