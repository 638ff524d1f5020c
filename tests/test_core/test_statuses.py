"""Tests for status derivation."""

from dataclasses import dataclass

from ordertrack.core.statuses import (
    ExpeditionStatus,
    LoadingStatus,
    OrderState,
    ProductionStatus,
    derive_expedition_status,
    derive_loading_status,
    derive_order_state,
    derive_production_status,
)


@dataclass
class Line:
    quantity_ordered: int
    quantity_ready: int = 0
    quantity_shipped: int = 0


class TestProductionStatus:
    """Tests for derive_production_status."""

    def test_nothing_ready(self) -> None:
        """No ready quantity means still to produce."""
        assert derive_production_status([Line(10), Line(5)]) == ProductionStatus.A_PROD

    def test_no_lines(self) -> None:
        """An order without lines is still to produce."""
        assert derive_production_status([]) == ProductionStatus.A_PROD

    def test_partial(self) -> None:
        """Anything ready on any line is partial."""
        lines = [Line(10, quantity_ready=10), Line(5)]
        assert derive_production_status(lines) == ProductionStatus.PROD_PARTIELLE

    def test_complete(self) -> None:
        """Every line fully ready is complete."""
        lines = [Line(10, quantity_ready=10), Line(5, quantity_ready=5)]
        assert derive_production_status(lines) == ProductionStatus.PROD_COMPLETE

    def test_zero_quantity_line_counts_as_ready(self) -> None:
        """A line ordered at zero does not block completion."""
        lines = [Line(10, quantity_ready=10), Line(0)]
        assert derive_production_status(lines) == ProductionStatus.PROD_COMPLETE


class TestExpeditionStatus:
    """Tests for derive_expedition_status."""

    def test_transitions(self) -> None:
        """Nothing, part and all of the ordered total shipped."""
        assert derive_expedition_status([Line(10, 10, 0)]) == ExpeditionStatus.NON_EXPEDIEE
        assert derive_expedition_status([Line(10, 10, 4)]) == ExpeditionStatus.EXP_PARTIELLE
        assert derive_expedition_status([Line(10, 10, 10)]) == ExpeditionStatus.EXP_COMPLETE

    def test_empty_order(self) -> None:
        """Nothing ordered is never shipped."""
        assert derive_expedition_status([]) == ExpeditionStatus.NON_EXPEDIEE


class TestOrderState:
    """Tests for derive_order_state."""

    def test_mapping(self) -> None:
        """Each status pair maps to one office state."""
        assert derive_order_state("A_PROD", "NON_EXPEDIEE") == OrderState.EN_PREPARATION
        assert derive_order_state("PROD_PARTIELLE", "NON_EXPEDIEE") == OrderState.EN_PREPARATION
        assert derive_order_state("PROD_COMPLETE", "NON_EXPEDIEE") == OrderState.PRETE_A_EXPEDIER
        assert derive_order_state("PROD_COMPLETE", "EXP_PARTIELLE") == OrderState.PARTIELLEMENT_EXPEDIEE
        assert derive_order_state("PROD_COMPLETE", "EXP_COMPLETE") == OrderState.EXPEDIEE

    def test_unknown(self) -> None:
        """Unexpected values give the unknown state."""
        assert derive_order_state("BOGUS", "BOGUS") == OrderState.UNKNOWN


class TestLoadingStatus:
    """Tests for derive_loading_status."""

    def test_levels(self) -> None:
        """Nothing, part and everything chargeable loaded."""
        assert derive_loading_status(10, 0) == LoadingStatus.TODO
        assert derive_loading_status(10, 4) == LoadingStatus.PARTIAL
        assert derive_loading_status(10, 10) == LoadingStatus.COMPLETE
