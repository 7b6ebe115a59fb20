"""HTTP surface: the API application and its client."""

from .app import create_app
from .client import RindBrowserClient, RindBrowserAPIError

__all__ = ['create_app', 'RindBrowserClient', 'RindBrowserAPIError']
