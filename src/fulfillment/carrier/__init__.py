"""Carrier adapters — pluggable shipping carrier integration."""

from fulfillment.carrier.port import CarrierPort


def build_carrier(settings) -> CarrierPort:
    """Return a fresh carrier adapter for ``settings.carrier_adapter``."""
    if settings.carrier_adapter == "fake":
        from fulfillment.carrier.fake_adapter import FakeCarrier

        return FakeCarrier()
    raise ValueError(f"Unknown carrier adapter: {settings.carrier_adapter}")
