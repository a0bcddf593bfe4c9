"""
Configuration adapters.
"""

from .environment import EnvironmentConfigProvider
from .file_config import FileConfigProvider, config_from_dict, find_config_file


__all__ = [
    "EnvironmentConfigProvider",
    "FileConfigProvider",
    "config_from_dict",
    "find_config_file",
]
