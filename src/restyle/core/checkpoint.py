"""CheckpointManager for the pre-mutation host snapshot."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from restyle.contracts import Checkpoint, CheckpointCreationError
from restyle.core.config import CheckpointSettings
from restyle.core.logging import get_logger

if TYPE_CHECKING:
    from restyle.host.adapter import HostAdapter

logger = get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class CheckpointManager:
    """Creates the recovery point taken before a run mutates anything.

    The snapshot lives in the host's own version history, so a user can
    roll back manually whatever happens to the run afterwards. Restyle
    never inspects or restores it; a Checkpoint is only proof it exists.
    """

    def __init__(
        self,
        adapter: HostAdapter,
        settings: CheckpointSettings | None = None,
        *,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize with the host adapter.

        Args:
            adapter: Typed host adapter used to create the snapshot
            settings: Title formatting (defaults if None)
            now: Timestamp source, injectable for tests
        """
        self._adapter = adapter
        self._settings = settings or CheckpointSettings()
        self._now = now or _utc_now

    def build_title(self, operation_name: str, created_at: datetime) -> str:
        """Title shown in the host's version history, e.g. 'Style Replacement - 2026-10-18 09:30:00'."""
        timestamp = created_at.strftime(self._settings.timestamp_format)
        return self._settings.title_format.format(operation=operation_name, timestamp=timestamp)

    async def create_checkpoint(self, operation_name: str) -> Checkpoint:
        """Create a host snapshot for an operation.

        Not retried: a snapshot that fails once is treated as the document
        being unprotectable, and the run aborts before any mutation.

        Args:
            operation_name: Human-readable operation, e.g. "Style Replacement"

        Returns:
            The created Checkpoint

        Raises:
            CheckpointCreationError: If the host snapshot call fails
        """
        created_at = self._now()
        title = self.build_title(operation_name, created_at)
        try:
            await self._adapter.create_snapshot(title)
        except Exception as e:
            logger.error("checkpoint_failed", title=title, error=str(e))
            raise CheckpointCreationError(title, e) from e

        logger.info("checkpoint_created", title=title)
        return Checkpoint(title=title, created_at=created_at)
