"""
FastAPI application entry point with router registration.
"""
import asyncio
import sys

if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from backoffice.server.app.setup import app  # noqa: E402

__all__ = ["app"]
