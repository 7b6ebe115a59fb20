"""Utility modules for the RindBrowser system."""

from .config import config, Config, BrowserOptions, load_yaml_file
from .logger import log, console, create_progress

__all__ = [
    'config',
    'Config',
    'BrowserOptions',
    'load_yaml_file',
    'log',
    'console',
    'create_progress'
]
