"""Test fixtures for notification infrastructure tests."""

import pytest

from infrastructure.notifications.advisor import AdvisorGateway, HeuristicAdvisor


@pytest.fixture
def advisor_gateway(clock):
    """Gateway around the heuristic advisor with a generous timeout."""
    gateway = AdvisorGateway(HeuristicAdvisor(), timeout_ms=2000, clock=clock)
    yield gateway
    gateway.shutdown()


@pytest.fixture
def slow_advisor():
    """Advisor blocking until released, for timeout tests."""
    import threading

    from infrastructure.notifications.advisor import OptimizationAdvisor

    release = threading.Event()

    class _SlowAdvisor(OptimizationAdvisor):
        def __init__(self):
            self.calls = 0

        def advise(self, subscriber, request, at):
            self.calls += 1
            release.wait(5)
            return HeuristicAdvisor().advise(subscriber, request, at)

    advisor = _SlowAdvisor()
    yield advisor
    release.set()
