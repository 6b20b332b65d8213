"""Customer notification adapters."""

from fulfillment.notification.port import NotifierPort


def build_notifier(settings) -> NotifierPort:
    if settings.notifier_adapter == "fake":
        from fulfillment.notification.fake_notifier import FakeNotifier

        return FakeNotifier()
    raise ValueError(f"Unknown notifier adapter: {settings.notifier_adapter}")
