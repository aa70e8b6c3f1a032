"""Tests for the append-only order communication thread."""

import pytest

from trade_kernel.exceptions import (
    ImmutabilityViolationError,
    MissingFieldError,
    OrderNotFoundError,
)
from trade_kernel.models.communication import Communication
from trade_kernel.services.communication_service import CommunicationService


@pytest.fixture
def communications(session, clock):
    return CommunicationService(session, clock=clock)


class TestPostMessage:

    def test_post_and_list(self, communications, make_order):
        order = make_order()

        posted = communications.post_message(order.id, 7, "general", "Pallets are wrapped", subject="Update")

        thread = communications.list_for_order(order.id)
        assert [c.id for c in thread] == [posted.id]
        assert thread[0].subject == "Update"
        assert thread[0].priority == "normal"
        assert thread[0].is_read is False

    def test_thread_mixes_manual_and_milestone_messages(self, communications, milestone_engine, make_order):
        order = make_order()
        communications.post_message(order.id, 7, "general", "Hello")
        milestone_engine.confirm_order(order.id, 7)

        thread = communications.list_for_order(order.id)
        assert [c.message_type for c in thread] == ["general", "milestone_update"]

    def test_blank_subject_stored_as_none(self, communications, make_order):
        posted = communications.post_message(make_order().id, 7, "general", "Body", subject="")
        assert posted.subject is None

    def test_required_fields(self, communications):
        with pytest.raises(MissingFieldError) as exc_info:
            communications.post_message(None, 7, "", "  ")
        assert exc_info.value.fields == ["orderid", "messagetype", "messagebody"]

    def test_unknown_order(self, communications):
        with pytest.raises(OrderNotFoundError):
            communications.post_message(999_999, 7, "general", "Body")

    def test_other_orders_not_listed(self, communications, make_order):
        first, second = make_order(), make_order()
        communications.post_message(first.id, 7, "general", "For first")
        assert communications.list_for_order(second.id) == []


class TestAppendOnly:

    def test_update_blocked(self, session, communications, make_order):
        posted = communications.post_message(make_order().id, 7, "general", "Original")
        row = session.get(Communication, posted.id)

        row.body = "Edited"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_delete_blocked(self, session, communications, make_order):
        posted = communications.post_message(make_order().id, 7, "general", "Original")

        session.delete(session.get(Communication, posted.id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()
