"""Applies a warehouse layout: ensures every dataset and table exists."""

import time
from dataclasses import dataclass, field
from typing import Dict, List

from ..config.schema import WarehouseConfig
from ..utils.logging import LoggerMixin
from ..warehouse import BigQueryConnector, NotFoundError, WarehouseError


@dataclass
class ProvisionResult:
    """Outcome of applying a layout."""

    datasets_ensured: int = 0
    tables_created: int = 0
    tables_existing: int = 0
    failures: Dict[str, str] = field(default_factory=dict)
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return not self.failures

    @property
    def tables_processed(self) -> int:
        return self.tables_created + self.tables_existing + len(self.failures)


class Provisioner(LoggerMixin):
    """Creates the datasets and tables a layout describes."""

    def __init__(self, connector: BigQueryConnector):
        self.connector = connector

    def apply(self, config: WarehouseConfig) -> ProvisionResult:
        """Create every dataset and table in the layout.

        A dataset that fails to be created skips its tables; a table that
        fails is recorded and the remaining tables are still attempted.
        Failures are keyed by ``dataset`` or ``dataset.table``. Datasets go
        to the layout's project when it names one.
        """
        result = ProvisionResult()
        start_time = time.time()

        self.logger.info(
            "Starting warehouse provisioning",
            datasets=len(config.datasets),
            tables=config.table_count
        )

        for dataset in config.datasets:
            try:
                self.connector.add_dataset(dataset.dataset_id, exists_ok=True, project_id=config.project_id)
            except WarehouseError as e:
                result.failures[dataset.dataset_id] = str(e)
                self.logger.error("Dataset provisioning failed", dataset_id=dataset.dataset_id, error=str(e))
                continue

            result.datasets_ensured += 1

            for table in dataset.tables:
                key = f"{dataset.dataset_id}.{table.table_id}"
                try:
                    created = self.connector.create_table_if_not_exists(
                        dataset.dataset_id,
                        table.table_id,
                        table.to_table_schema(),
                        expiration_seconds=table.expiration_seconds
                    )
                except (WarehouseError, ValueError) as e:
                    result.failures[key] = str(e)
                    self.logger.error("Table provisioning failed", table=key, error=str(e))
                    continue

                if created:
                    result.tables_created += 1
                else:
                    result.tables_existing += 1

        result.duration = time.time() - start_time

        self.logger.info(
            "Completed warehouse provisioning",
            datasets_ensured=result.datasets_ensured,
            tables_created=result.tables_created,
            tables_existing=result.tables_existing,
            failures=len(result.failures)
        )
        return result

    def missing_tables(self, config: WarehouseConfig) -> List[str]:
        """List ``dataset.table`` entries of the layout not present remotely."""
        missing = []
        for dataset in config.datasets:
            try:
                existing = set(self.connector.list_tables(dataset.dataset_id, project_id=config.project_id))
            except NotFoundError:
                existing = set()
            missing.extend(
                f"{dataset.dataset_id}.{t.table_id}" for t in dataset.tables if t.table_id not in existing
            )
        return missing
