from typing import Dict, Iterable

from epicircle.domain.models import PickupRequest, PickupStatus

ACTIVE_STATUSES = {PickupStatus.ACCEPTED, PickupStatus.IN_PROCESS}


def status_summary(requests: Iterable[PickupRequest]) -> Dict[str, int]:
    """Dashboard counters over any slice of the ledger."""
    summary = {"total": 0, "pending": 0, "active": 0, "awaitingApproval": 0, "completed": 0}
    for r in requests:
        summary["total"] += 1
        if r.status == PickupStatus.PENDING:
            summary["pending"] += 1
        elif r.status in ACTIVE_STATUSES:
            summary["active"] += 1
        elif r.status == PickupStatus.PENDING_APPROVAL:
            summary["awaitingApproval"] += 1
        elif r.status == PickupStatus.COMPLETED:
            summary["completed"] += 1
    return summary
