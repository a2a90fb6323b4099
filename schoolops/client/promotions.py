import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping

from .api import SchoolApiClient
from .errors import LocalValidationError
from .validation import PromotionChoice, validate_session_pair

logger = logging.getLogger(__name__)


@dataclass
class PromotionCounts:
    promoted: int = 0
    graduated: int = 0
    detained: int = 0

    @property
    def total(self) -> int:
        return self.promoted + self.graduated + self.detained


@dataclass
class ExecutionReport:
    from_session_id: str
    to_session_id: str
    processed: int
    promoted: int
    graduated: int
    detained: int
    message: str = ""
    records: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def remaining_pending(self) -> int:
        return sum(1 for r in self.records if r.get("status") == "PENDING")


class PromotionWorkflow:
    """Caller-side promotion flow: collect choices per class, then execute a session transition."""

    def __init__(self, client: SchoolApiClient) -> None:
        self.client = client

    @staticmethod
    def summarize(records: Iterable[Mapping[str, Any]]) -> PromotionCounts:
        """Counts of PENDING records by outcome."""
        counts = PromotionCounts()
        for r in records:
            if r.get("status") != "PENDING":
                continue
            if r.get("is_graduated"):
                counts.graduated += 1
            elif r.get("to_class_name"):
                counts.promoted += 1
            else:
                counts.detained += 1
        return counts

    async def assign(self, class_id: Any, session_id: Any, choices: List[PromotionChoice]) -> List[Dict[str, Any]]:
        if not choices:
            raise LocalValidationError("No promotion decisions to save")
        return await self.client.assign_promotions(class_id, session_id, choices)

    async def execute(self, from_session_id: Any, to_session_id: Any) -> ExecutionReport:
        validate_session_pair(from_session_id, to_session_id)
        records = await self.client.list_session_promotions(from_session_id, fresh=True)
        pending = self.summarize(records)
        if pending.total == 0:
            raise LocalValidationError("No pending promotions")

        result = await self.client.execute_promotions(from_session_id, to_session_id)
        message = self.client.last_message or ""
        reloaded = await self.client.list_session_promotions(from_session_id, fresh=True)
        logger.info(
            "Executed %d promotions (%d promoted, %d graduated, %d detained)",
            result["processed"],
            result["promoted"],
            result["graduated"],
            result["detained"],
        )
        return ExecutionReport(
            from_session_id=str(result["from_session_id"]),
            to_session_id=str(result["to_session_id"]),
            processed=result["processed"],
            promoted=result["promoted"],
            graduated=result["graduated"],
            detained=result["detained"],
            message=message,
            records=reloaded,
        )
