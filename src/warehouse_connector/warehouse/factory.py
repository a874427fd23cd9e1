"""Connector construction from settings and the process-wide accessor."""

import threading
from typing import Optional

from ..config.settings import BigQuerySettings, get_settings
from .bigquery import BigQueryConnector


def create_connector(settings: Optional[BigQuerySettings] = None, **overrides) -> BigQueryConnector:
    """Build a new, independent connector.

    Args:
        settings: BigQuery settings (defaults to the application settings)
        **overrides: Values replacing individual settings fields,
            e.g. ``credentials_path`` or ``project_id``

    Raises:
        AuthenticationError: If the credentials cannot be loaded
    """
    settings = settings or get_settings().bigquery
    values = settings.model_dump()
    values.update({key: value for key, value in overrides.items() if value is not None})

    return BigQueryConnector.from_credentials(
        credentials_path=values["credentials_path"],
        project_id=values["project_id"],
        key_file_name=values["key_file_name"],
        location=values["location"],
        job_timeout=values["job_timeout_seconds"],
    )


# Global connector instance
_connector: Optional[BigQueryConnector] = None
_connector_lock = threading.Lock()


def get_connector(
    credentials_path: Optional[str] = None,
    project_id: Optional[str] = None
) -> BigQueryConnector:
    """Get the process-wide connector, building it on first use.

    Arguments only matter for the first call; later calls return the
    connector that call built.
    """
    global _connector
    if _connector is None:
        with _connector_lock:
            if _connector is None:
                _connector = create_connector(
                    credentials_path=credentials_path,
                    project_id=project_id
                )
    return _connector


def reset_connector() -> None:
    """Forget the process-wide connector."""
    global _connector
    with _connector_lock:
        _connector = None
