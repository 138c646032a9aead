import pytest

from docflow.routing import DecisionRouter


@pytest.mark.parametrize("amount", [None, 0, 450.0, 999.99])
def test_below_threshold_is_automatic(amount):
    decision = DecisionRouter().route(amount)
    assert decision.auto_approve is True
    assert decision.status == "approved"
    assert decision.approval_type == "automatic"
    assert decision.reason == "Amount below $1000 threshold"
    assert decision.amount == (amount or 0)


@pytest.mark.parametrize("amount", [1000, 1000.01, 25000.0])
def test_at_or_above_threshold_is_manual(amount):
    decision = DecisionRouter().route(amount)
    assert decision.auto_approve is False
    assert decision.status == "awaiting_approval"
    assert decision.approval_type == "manual"
    assert decision.reason == "Document requires manual approval due to amount >= $1000"


def test_custom_threshold():
    router = DecisionRouter(threshold=5000)
    assert router.route(4999.99).auto_approve is True
    assert router.route(5000).auto_approve is False
    assert router.route(10).reason == "Amount below $5000 threshold"
