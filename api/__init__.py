"""
HTTP read API for developer reputation and risk.
"""

from api.app import create_app
from api.router import router

__all__ = ["create_app", "router"]
