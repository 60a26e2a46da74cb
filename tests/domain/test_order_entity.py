import pytest

from domain.common.exceptions import DomainValidationException, InvalidStatusTransitionException
from domain.order import Order, OrderStatus


def _order(**overrides):
    data = dict(
        id=1,
        user_id=1,
        product_id=1,
        amount=10000,
        tax_amount=1900,
        currency="EUR",
        provider_intent_id="pi_1",
    )
    data.update(overrides)
    return Order(**data)


def test_new_order_is_pending_and_normalizes_currency():
    order = _order()
    assert order.status == OrderStatus.PENDING
    assert order.currency == "eur"
    assert order.total_amount == 11900
    assert order.is_final is False


@pytest.mark.parametrize("field, value", [("amount", 0), ("tax_amount", -1), ("quantity", 0)])
def test_invalid_amounts_rejected(field, value):
    with pytest.raises(DomainValidationException):
        _order(**{field: value})


@pytest.mark.parametrize("target", [OrderStatus.COMPLETED, OrderStatus.FAILED, OrderStatus.CANCELLED])
def test_pending_moves_to_any_terminal_state(target):
    order = _order()
    assert order.transition_to(target) is True
    assert order.status == target
    assert order.is_final
    assert order.version == 1


def test_same_state_transition_is_noop():
    order = _order(status=OrderStatus.COMPLETED)
    assert order.transition_to(OrderStatus.COMPLETED) is False
    assert order.version == 0


@pytest.mark.parametrize(
    "current, target",
    [
        (OrderStatus.COMPLETED, OrderStatus.FAILED),
        (OrderStatus.FAILED, OrderStatus.COMPLETED),
        (OrderStatus.CANCELLED, OrderStatus.PENDING),
        (OrderStatus.COMPLETED, OrderStatus.PENDING),
    ],
)
def test_terminal_states_never_revert(current, target):
    order = _order(status=current)
    with pytest.raises(InvalidStatusTransitionException) as exc_info:
        order.transition_to(target)
    assert exc_info.value.current == current.value
    assert exc_info.value.target == target.value
    assert order.status == current


def test_relink_keeps_history():
    order = _order()
    order.relink_intent("pi_2")
    order.relink_intent("pi_3")
    assert order.provider_intent_id == "pi_3"
    assert order.previous_intent_id == "pi_2"
    assert order.intent_history == ["pi_1", "pi_2"]
