"""Item status pipeline and QC sub-flow"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple, Union

from app.models.item import ItemStatus, QcStatus
from app.services.errors import InvalidTransitionError, ItemValidationError

# Statuses new writes may use
CURRENT_STATUSES: Tuple[ItemStatus, ...] = (
    ItemStatus.ORDERED,
    ItemStatus.QC_SENT,
    ItemStatus.ITEM_SHIPOUT,
    ItemStatus.ARRIVED_PH_WAREHOUSE,
    ItemStatus.DELIVERED_TO_CUSTOMER,
    ItemStatus.REFUNDED,
)

# Read-only: still valid on stored rows, never written
LEGACY_STATUSES: Tuple[ItemStatus, ...] = (
    ItemStatus.SHIPPED_TO_WAREHOUSE,
    ItemStatus.AT_CN_WAREHOUSE,
    ItemStatus.SHIPPED_TO_PH,
    ItemStatus.AT_PH_WAREHOUSE,
    ItemStatus.DELIVERED_TO_ME,
    ItemStatus.SOLD,
    ItemStatus.CANCELLED,
    ItemStatus.RETURNED,
)

STATUS_FLOW: Tuple[ItemStatus, ...] = (
    ItemStatus.ORDERED,
    ItemStatus.QC_SENT,
    ItemStatus.ITEM_SHIPOUT,
    ItemStatus.ARRIVED_PH_WAREHOUSE,
    ItemStatus.DELIVERED_TO_CUSTOMER,
)

SOLD_STATUSES = frozenset({ItemStatus.DELIVERED_TO_CUSTOMER, ItemStatus.SOLD})

CLOSED_STATUSES = SOLD_STATUSES | {
    ItemStatus.REFUNDED,
    ItemStatus.CANCELLED,
    ItemStatus.RETURNED,
}


class QcResolution(str, enum.Enum):
    """Caller's answer to a rejected QC"""
    REORDER = "reorder"
    REFUND = "refund"


QC_REJECTION_OUTCOMES = {
    QcResolution.REORDER: ItemStatus.ORDERED,
    QcResolution.REFUND: ItemStatus.REFUNDED,
}


@dataclass(frozen=True)
class QcTransition:
    """Outcome of a QC status change on the main status"""
    auto_status: Optional[ItemStatus] = None
    choices: Tuple[QcResolution, ...] = ()

    @property
    def choice_required(self) -> bool:
        return bool(self.choices)


def parse_status(value: Union[str, ItemStatus]) -> ItemStatus:
    """Parse any known status, legacy values included"""
    try:
        return ItemStatus(value)
    except ValueError:
        raise ItemValidationError(f"Invalid status: {value}", field="status")


def ensure_writable_status(value: Union[str, ItemStatus]) -> ItemStatus:
    """Parse a status for a write; legacy statuses are rejected"""
    status = parse_status(value)
    if status not in CURRENT_STATUSES:
        raise ItemValidationError(
            f"Status '{status.value}' is a legacy status and cannot be written",
            field="status",
        )
    return status


def parse_qc_status(value: Union[str, QcStatus]) -> QcStatus:
    try:
        return QcStatus(value)
    except ValueError:
        raise ItemValidationError(f"Invalid QC status: {value}", field="qc_status")


def is_sold_status(status: Optional[ItemStatus]) -> bool:
    return status in SOLD_STATUSES


def next_pipeline_status(status: ItemStatus) -> Optional[ItemStatus]:
    """Following step of the pipeline, None at the end or off the pipeline"""
    if status not in STATUS_FLOW:
        return None
    index = STATUS_FLOW.index(status)
    if index + 1 >= len(STATUS_FLOW):
        return None
    return STATUS_FLOW[index + 1]


def resolve_sold_date(
    previous_status: Optional[ItemStatus],
    new_status: ItemStatus,
    existing_sold_date: Optional[datetime],
    now: datetime,
) -> Optional[datetime]:
    """
    sold_date after a status write.

    Stamped with ``now`` on a move into a sold status from a different status,
    and only while no sold_date exists yet. Once set it is never changed or
    cleared. ``previous_status`` is None on creation.
    """
    if existing_sold_date is not None:
        return existing_sold_date
    if not is_sold_status(new_status):
        return None
    if previous_status == new_status:
        return None
    return now


def next_status(current: ItemStatus, qc_status: QcStatus) -> QcTransition:
    """
    Effect of a QC result on the main status.

    GL while the item is at qc_sent moves it on to item_shipout. RL on an
    open item leaves the status alone and offers reorder or refund; the
    caller picks one through resolve_qc_rejection.
    """
    if qc_status == QcStatus.GL and current == ItemStatus.QC_SENT:
        return QcTransition(auto_status=ItemStatus.ITEM_SHIPOUT)
    if qc_status == QcStatus.RL and current not in CLOSED_STATUSES:
        return QcTransition(choices=tuple(QC_REJECTION_OUTCOMES))
    return QcTransition()


def resolve_qc_rejection(
    current: ItemStatus,
    qc_status: QcStatus,
    choice: Union[str, QcResolution],
) -> Tuple[ItemStatus, QcStatus]:
    """
    Apply the caller's choice after an RL.

    Returns (status, qc_status). Reordering restarts the pipeline with QC
    reset to not_received for the replacement; refunding keeps the RL.
    """
    try:
        choice = QcResolution(choice)
    except ValueError:
        raise ItemValidationError(f"Invalid QC resolution: {choice}", field="resolution")

    if choice not in next_status(current, qc_status).choices:
        raise InvalidTransitionError(
            f"QC resolution '{choice.value}' is only available for open items with QC status 'rl'"
        )

    if choice == QcResolution.REORDER:
        return ItemStatus.ORDERED, QcStatus.NOT_RECEIVED
    return ItemStatus.REFUNDED, qc_status
