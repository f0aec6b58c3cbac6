"""
FastAPI dependencies
"""

from fastapi import Request
from entities.factory import EntityFactory


def get_factory(request: Request) -> EntityFactory:
    """Entity factory created by the application lifespan"""
    return request.app.state.factory
