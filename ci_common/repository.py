"""
Abstract repository interface for build history.

This module defines the contract that any history store must follow,
allowing easy swapping between SQLite, PostgreSQL, etc. The scheduler is the
only writer.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from .models import BuildRecord, ItemState


class BuildRepository(ABC):
    """
    Abstract base class for build history storage.

    Implementations must be async-safe and handle their own connection
    management.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create the schema if it does not exist yet."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release any open connections."""
        pass

    @abstractmethod
    async def create_record(self, record: BuildRecord) -> None:
        """
        Persist a new history record.

        Args:
            record: Record to store

        Raises:
            Exception: If a record with the same ID already exists
        """
        pass

    @abstractmethod
    async def mark_processing(self, record_id: str, started_at: datetime) -> None:
        """
        Move a record to the processing state.

        Args:
            record_id: ID of the record to update
            started_at: When the worker picked the item up
        """
        pass

    @abstractmethod
    async def complete_record(
        self,
        record_id: str,
        state: ItemState,
        finished_at: datetime,
        success: bool | None = None,
        plan_id: str | None = None,
        error: str | None = None,
    ) -> None:
        """
        Move a record to a terminal state.

        Args:
            record_id: ID of the record to update
            state: ItemState.COMPLETED or ItemState.FAILED
            finished_at: When processing ended
            success: Build outcome (jobs only)
            plan_id: Plan the job realised (jobs only)
            error: Failure message for failed items
        """
        pass

    @abstractmethod
    async def get_record(self, record_id: str) -> BuildRecord | None:
        """
        Retrieve a record by its ID.

        Returns:
            BuildRecord if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_records(self, limit: int = 50) -> list[BuildRecord]:
        """
        List the most recently queued records, newest first.

        Args:
            limit: Maximum number of records to return
        """
        pass
