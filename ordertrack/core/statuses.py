"""Order enums and status derivation.

The cached status columns on `orders` are always rewritten from these
functions, fed with the current line quantities.
"""

from collections.abc import Iterable
from enum import Enum
from typing import Protocol


class Priority(str, Enum):
    NORMAL = "NORMAL"
    INTERMEDIAIRE = "INTERMEDIAIRE"
    URGENT = "URGENT"


class ProductionStatus(str, Enum):
    A_PROD = "A_PROD"
    PROD_PARTIELLE = "PROD_PARTIELLE"
    PROD_COMPLETE = "PROD_COMPLETE"


class ExpeditionStatus(str, Enum):
    NON_EXPEDIEE = "NON_EXPEDIEE"
    EXP_PARTIELLE = "EXP_PARTIELLE"
    EXP_COMPLETE = "EXP_COMPLETE"


class ProductCategory(str, Enum):
    BIGBAG = "BIGBAG"
    ROCHE = "ROCHE"
    AUTRE = "AUTRE"


class OrderState(str, Enum):
    """Business state shown to the office, derived from both statuses."""

    EN_PREPARATION = "EN_PREPARATION"
    PRETE_A_EXPEDIER = "PRETE_A_EXPEDIER"
    PARTIELLEMENT_EXPEDIEE = "PARTIELLEMENT_EXPEDIEE"
    EXPEDIEE = "EXPEDIEE"
    UNKNOWN = "UNKNOWN"


class LoadingStatus(str, Enum):
    TODO = "TODO"
    PARTIAL = "PARTIAL"
    COMPLETE = "COMPLETE"


ORDER_STATE_LABELS: dict[OrderState, str] = {
    OrderState.EN_PREPARATION: "En préparation",
    OrderState.PRETE_A_EXPEDIER: "Prête à expédier",
    OrderState.PARTIELLEMENT_EXPEDIEE: "Partiellement expédiée",
    OrderState.EXPEDIEE: "Expédiée",
    OrderState.UNKNOWN: "—",
}

# Sort rank used by the production worklists
PRIORITY_RANK: dict[str, int] = {
    Priority.URGENT.value: 1,
    Priority.INTERMEDIAIRE.value: 2,
    Priority.NORMAL.value: 3,
}

# SmallBag products are stored under BIGBAG in the catalog but older rows may
# still carry the legacy value.
BIGBAG_CATEGORIES = frozenset({"BIGBAG", "SMALLBAG"})


class LineQuantities(Protocol):
    quantity_ordered: int
    quantity_ready: int
    quantity_shipped: int


def derive_production_status(lines: Iterable[LineQuantities]) -> ProductionStatus:
    """Production status from ready vs ordered quantities.

    Complete when every line is fully ready, partial as soon as anything
    is ready, otherwise still to produce. An order without lines is A_PROD.
    """
    total = 0
    ready_lines = 0
    sum_ready = 0
    for line in lines:
        total += 1
        ready = line.quantity_ready or 0
        sum_ready += ready
        if ready >= (line.quantity_ordered or 0):
            ready_lines += 1

    if total > 0 and ready_lines == total:
        return ProductionStatus.PROD_COMPLETE
    if sum_ready > 0:
        return ProductionStatus.PROD_PARTIELLE
    return ProductionStatus.A_PROD


def derive_expedition_status(lines: Iterable[LineQuantities]) -> ExpeditionStatus:
    """Expedition status from the shipped vs ordered totals."""
    sum_ordered = 0
    sum_shipped = 0
    for line in lines:
        sum_ordered += line.quantity_ordered or 0
        sum_shipped += line.quantity_shipped or 0

    if 0 < sum_shipped < sum_ordered:
        return ExpeditionStatus.EXP_PARTIELLE
    if sum_ordered > 0 and sum_shipped == sum_ordered:
        return ExpeditionStatus.EXP_COMPLETE
    return ExpeditionStatus.NON_EXPEDIEE


def derive_order_state(production_status: str, expedition_status: str) -> OrderState:
    """Office-facing state of an order."""
    if expedition_status == ExpeditionStatus.EXP_PARTIELLE:
        return OrderState.PARTIELLEMENT_EXPEDIEE
    if expedition_status == ExpeditionStatus.EXP_COMPLETE:
        return OrderState.EXPEDIEE
    if production_status in (ProductionStatus.A_PROD, ProductionStatus.PROD_PARTIELLE):
        return OrderState.EN_PREPARATION
    if (
        production_status == ProductionStatus.PROD_COMPLETE
        and expedition_status == ExpeditionStatus.NON_EXPEDIEE
    ):
        return OrderState.PRETE_A_EXPEDIER
    return OrderState.UNKNOWN


def derive_loading_status(chargeable_total: int, loaded_total: int) -> LoadingStatus:
    """Truck loading progress for the production shipments worklist."""
    if loaded_total <= 0:
        return LoadingStatus.TODO
    if chargeable_total > 0 and loaded_total >= chargeable_total:
        return LoadingStatus.COMPLETE
    return LoadingStatus.PARTIAL
