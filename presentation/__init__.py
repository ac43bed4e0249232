"""Presentation layer for the team calendar server."""

from .app import create_app, AsyncExecutor, AppComponents

__all__ = ['create_app', 'AsyncExecutor', 'AppComponents']
