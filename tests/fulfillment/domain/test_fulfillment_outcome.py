from fulfillment.pipeline.stages import FulfillmentError, FulfillmentOutcome


def test_success_without_warnings_is_not_degraded():
    outcome = FulfillmentOutcome(success=True, order_id="ord-1", tracking_number="TRK1")
    assert not outcome.degraded


def test_success_with_warnings_is_degraded():
    outcome = FulfillmentOutcome(
        success=True,
        order_id="ord-1",
        warnings=[{"error": "notification_failure", "stage": "notify", "reason": "down"}],
    )
    assert outcome.degraded


def test_failure_is_never_degraded():
    outcome = FulfillmentOutcome(success=False, order_id="ord-1", warnings=[{"error": "x"}])
    assert not outcome.degraded


def test_rejected():
    outcome = FulfillmentOutcome.rejected("ord-1", FulfillmentError.INVALID_STATE, "nope", status="Completed")
    assert outcome.error == "invalid_state"
    assert outcome.status == "Completed"
    assert outcome.stage is None


def test_to_dict_includes_degraded():
    data = FulfillmentOutcome(success=True, order_id="ord-1").to_dict()
    assert data["degraded"] is False
    assert data["order_id"] == "ord-1"
    assert data["warnings"] == []
