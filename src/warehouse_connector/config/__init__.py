"""Configuration package for the warehouse connector."""

from .settings import (
    BigQuerySettings,
    LoggingSettings,
    AppSettings,
    get_settings
)

from .schema import (
    WarehouseConfig,
    DatasetDefinition,
    TableDefinition,
    FieldDefinition,
    SCORES_LAYOUT_EXAMPLE
)

from .loader import (
    ConfigLoader,
    ConfigurationError
)

__all__ = [
    # Environment settings
    "BigQuerySettings",
    "LoggingSettings",
    "AppSettings",
    "get_settings",

    # Layout files
    "WarehouseConfig",
    "DatasetDefinition",
    "TableDefinition",
    "FieldDefinition",
    "SCORES_LAYOUT_EXAMPLE",

    "ConfigLoader",
    "ConfigurationError"
]
