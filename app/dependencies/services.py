"""Process-wide collaborators, built in the lifespan and stored on ``app.state``.

Routes depend on these getters so tests can swap any of them through
``app.dependency_overrides``.
"""
from fastapi import Request


def get_publisher(request: Request):
    return request.app.state.broker


def get_broker(request: Request):
    return request.app.state.broker


def get_gateway(request: Request):
    return request.app.state.gateway


def get_cache(request: Request):
    return request.app.state.cache


def get_activity_logger(request: Request):
    return request.app.state.activity_logger


def get_storage(request: Request):
    return request.app.state.storage
