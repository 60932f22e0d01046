"""API package initialization"""

from .flask_api import app, run_flask_app, set_services

__all__ = [
    'app',
    'run_flask_app',
    'set_services'
]
