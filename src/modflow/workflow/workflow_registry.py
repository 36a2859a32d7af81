"""In-memory registry of workflow records, owned by a single runner."""

from __future__ import annotations

import itertools
import time
from collections import OrderedDict
from typing import Iterator, Optional

from modflow.datatypes.workflow_datatypes import WorkflowRecord
from modflow.util.logger import get_logger

logger = get_logger("workflow_registry")

DEFAULT_HISTORY_LIMIT = 256


class WorkflowRegistry:
    """Maps workflow ids to their records.

    The registry keeps at most ``limit`` records. When it is full, the oldest
    finished record is evicted to make room; running records are never
    evicted, so the registry can temporarily exceed ``limit`` when every
    retained workflow is still running.
    """

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self.limit = max(1, limit)
        self._records: "OrderedDict[str, WorkflowRecord]" = OrderedDict()
        self._sequence = itertools.count(1)

    def new_id(self) -> str:
        """Return a process-unique workflow id."""
        return f"wf_{int(time.time() * 1000)}_{next(self._sequence)}"

    def _evict(self) -> None:
        while len(self._records) >= self.limit:
            victim = next((wid for wid, rec in self._records.items() if rec.finished), None)
            if victim is None:
                return
            del self._records[victim]
            logger.debug("[WORKFLOW] Evicted finished workflow %s", victim)

    def register(self, record: WorkflowRecord) -> None:
        self._evict()
        self._records[record.id] = record

    def get(self, workflow_id: str) -> Optional[WorkflowRecord]:
        return self._records.get(workflow_id)

    def __contains__(self, workflow_id: object) -> bool:
        return workflow_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[WorkflowRecord]:
        return iter(list(self._records.values()))
