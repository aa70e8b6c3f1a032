"""
Pure tests for the milestone transition table.

No database.  The prefix property is checked over arbitrary action
sequences with hypothesis.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from trade_kernel.domain.milestones import (
    MILESTONE_ACTIONS,
    MILESTONE_CHAIN,
    MILESTONE_RULES,
    InvoiceStockStatus,
    MilestoneStatus,
    MilestoneType,
    OrderStatus,
    as_chain_type,
    check_transition,
    coerce_milestone_status,
    coerce_milestone_type,
    is_contiguous_prefix,
    next_milestone,
    predecessor_of,
    rule_for_action,
)
from trade_kernel.exceptions import (
    InvalidMilestoneStatusError,
    MilestoneAlreadyCompletedError,
    MilestonePredecessorMissingError,
    ValidationError,
)


class TestTransitionTable:

    def test_every_chain_link_has_one_rule(self):
        assert set(MILESTONE_RULES) == set(MILESTONE_CHAIN)
        assert len(MILESTONE_ACTIONS) == len(set(MILESTONE_ACTIONS)) == 5

    def test_predecessors_follow_the_chain(self):
        assert predecessor_of(MilestoneType.ORDER_CONFIRMED) is None
        for earlier, later in zip(MILESTONE_CHAIN, MILESTONE_CHAIN[1:]):
            assert predecessor_of(later) is earlier

    def test_cascade_targets(self):
        expected = {
            MilestoneType.ORDER_CONFIRMED: (None, OrderStatus.CONFIRMED),
            MilestoneType.READY_TO_SHIP: (InvoiceStockStatus.CONFIRMED, None),
            MilestoneType.GOODS_SHIPPED: (InvoiceStockStatus.SHIPPED, OrderStatus.SHIPPED),
            MilestoneType.GOODS_ARRIVED: (InvoiceStockStatus.ARRIVED, None),
            MilestoneType.GOODS_RECEIVED: (InvoiceStockStatus.COMPLETED, OrderStatus.COMPLETED),
        }
        for milestone_type, (invoice_status, order_status) in expected.items():
            rule = MILESTONE_RULES[milestone_type]
            assert rule.invoice_status is invoice_status
            assert rule.order_status is order_status

    def test_rules_are_frozen(self):
        rule = MILESTONE_RULES[MilestoneType.GOODS_SHIPPED]
        with pytest.raises(AttributeError):
            rule.title = "changed"
        with pytest.raises(TypeError):
            MILESTONE_RULES[MilestoneType.GOODS_SHIPPED] = rule

    @pytest.mark.parametrize(
        "action,milestone_type",
        [
            ("confirm-order", MilestoneType.ORDER_CONFIRMED),
            ("ready-to-ship", MilestoneType.READY_TO_SHIP),
            ("goods-shipped", MilestoneType.GOODS_SHIPPED),
            ("goods-arrived", MilestoneType.GOODS_ARRIVED),
            ("goods-received", MilestoneType.GOODS_RECEIVED),
        ],
    )
    def test_action_slugs(self, action, milestone_type):
        assert rule_for_action(action).milestone_type is milestone_type

    def test_unknown_action_slug(self):
        assert rule_for_action("goods-lost") is None


class TestCheckTransition:

    def test_first_link_needs_nothing(self):
        rule = check_transition(1, (), MilestoneType.ORDER_CONFIRMED)
        assert rule.milestone_type is MilestoneType.ORDER_CONFIRMED

    def test_next_link_allowed(self):
        completed = MILESTONE_CHAIN[:2]
        rule = check_transition(1, completed, MilestoneType.GOODS_SHIPPED)
        assert rule.order_status is OrderStatus.SHIPPED

    def test_skipping_names_missing_predecessor(self):
        with pytest.raises(MilestonePredecessorMissingError) as exc_info:
            check_transition(9, (MilestoneType.ORDER_CONFIRMED,), MilestoneType.GOODS_SHIPPED)

        exc = exc_info.value
        assert exc.predecessor == "ready_to_ship"
        assert exc.order_id == 9
        assert "ready_to_ship" in str(exc)

    def test_repeat_is_already_completed(self):
        with pytest.raises(MilestoneAlreadyCompletedError):
            check_transition(1, (MilestoneType.ORDER_CONFIRMED,), MilestoneType.ORDER_CONFIRMED)

    def test_already_completed_checked_before_predecessor(self):
        # A corrupted history (hole in the prefix) still reports the repeat.
        with pytest.raises(MilestoneAlreadyCompletedError):
            check_transition(1, (MilestoneType.GOODS_SHIPPED,), MilestoneType.GOODS_SHIPPED)


class TestProgressHelpers:

    def test_next_milestone(self):
        assert next_milestone(()) is MilestoneType.ORDER_CONFIRMED
        assert next_milestone(MILESTONE_CHAIN[:3]) is MilestoneType.GOODS_ARRIVED
        assert next_milestone(MILESTONE_CHAIN) is None

    def test_contiguous_prefix(self):
        assert is_contiguous_prefix(())
        assert is_contiguous_prefix(MILESTONE_CHAIN[:4])
        assert not is_contiguous_prefix((MilestoneType.READY_TO_SHIP,))
        assert not is_contiguous_prefix(
            (MilestoneType.ORDER_CONFIRMED, MilestoneType.ORDER_CONFIRMED)
        )

    def test_as_chain_type(self):
        assert as_chain_type("goods_arrived") is MilestoneType.GOODS_ARRIVED
        assert as_chain_type("customs_inspection") is None

    def test_coercion(self):
        assert coerce_milestone_type("goods_shipped") is MilestoneType.GOODS_SHIPPED
        assert coerce_milestone_status("in_progress") is MilestoneStatus.IN_PROGRESS
        with pytest.raises(ValidationError):
            coerce_milestone_type("goods_teleported")
        with pytest.raises(InvalidMilestoneStatusError):
            coerce_milestone_status("done")


@settings(max_examples=200)
@given(st.lists(st.sampled_from(MILESTONE_CHAIN), max_size=12))
def test_any_action_sequence_keeps_prefix(attempts):
    """Folding arbitrary attempts through check_transition only ever grows a prefix."""
    completed: list[MilestoneType] = []
    for milestone_type in attempts:
        try:
            check_transition(1, completed, milestone_type)
        except (MilestoneAlreadyCompletedError, MilestonePredecessorMissingError):
            pass
        else:
            completed.append(milestone_type)
        assert is_contiguous_prefix(completed)
        assert tuple(completed) == MILESTONE_CHAIN[: len(completed)]
