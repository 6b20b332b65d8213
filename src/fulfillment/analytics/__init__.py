"""Analytics adapters."""

from fulfillment.analytics.port import AnalyticsPort


def build_analytics(settings) -> AnalyticsPort:
    if settings.analytics_adapter == "fake":
        from fulfillment.analytics.fake_analytics import FakeAnalytics

        return FakeAnalytics()
    raise ValueError(f"Unknown analytics adapter: {settings.analytics_adapter}")
