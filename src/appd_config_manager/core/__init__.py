"""
Core functionality for the config manager.

Entity list parsing and the configuration entity catalogue.
"""

from .config_entities import APP_CONFIG_MAP, MigrationRequest, convert_config_names
from .entities import EntityInfo, format_entities, parse_entities

__all__ = [
    'APP_CONFIG_MAP',
    'MigrationRequest',
    'convert_config_names',
    'EntityInfo',
    'format_entities',
    'parse_entities',
]
