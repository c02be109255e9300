"""In-memory pool snapshot holder."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

import structlog
from pydantic import ValidationError

from sor.models.pool import PoolRecord

logger = structlog.get_logger()

PoolsSource = Callable[[], Iterable[PoolRecord | Mapping[str, Any]]]


def _validate_pools(pools: Iterable[PoolRecord | Mapping[str, Any]]) -> list[PoolRecord]:
    return [
        pool if isinstance(pool, PoolRecord) else PoolRecord.model_validate(pool)
        for pool in pools
    ]


class PoolCacher:
    """Holds the pool snapshot the router works from.

    The snapshot is replaced wholesale on every fetch, never patched, so a
    routing call always sees balances from a single moment.

    Args:
        initial_pools: Snapshot to start with
        pools_source: Callable returning a fresh snapshot (subgraph query,
            file, fixture); fetch_pools() without data calls it
    """

    def __init__(
        self,
        initial_pools: Iterable[PoolRecord | Mapping[str, Any]] = (),
        pools_source: PoolsSource | None = None,
    ) -> None:
        self._pools = _validate_pools(initial_pools)
        self._pools_source = pools_source
        self.finished_fetching = bool(self._pools)

    def get_pools(self) -> list[PoolRecord]:
        return list(self._pools)

    def fetch_pools(
        self, pools_data: Iterable[PoolRecord | Mapping[str, Any]] | None = None
    ) -> bool:
        """Replace the snapshot from `pools_data` or the configured source.

        Returns:
            True if a new snapshot was stored. On failure the previous
            snapshot is kept and finished_fetching is cleared.
        """
        if pools_data is None and self._pools_source is None:
            logger.warning("no_pools_source")
            self.finished_fetching = False
            return False

        try:
            if pools_data is None:
                pools_data = self._pools_source()  # type: ignore[misc]
            pools = _validate_pools(pools_data)
        except ValidationError as err:
            logger.warning("pools_invalid", error=str(err))
            self.finished_fetching = False
            return False
        except Exception:
            logger.exception("pools_fetch_failed")
            self.finished_fetching = False
            return False

        self._pools = pools
        self.finished_fetching = True
        logger.info("pools_fetched", pool_count=len(pools))
        return True


__all__ = ["PoolCacher", "PoolsSource"]
