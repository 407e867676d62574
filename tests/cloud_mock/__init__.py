"""In-memory cloud backend for tests.

Provides gateways implementing the same protocol as the REST gateways, with
scripted visibility lag so wait loops can be exercised deterministically.

Usage:
    from cloud_mock import FakeClock, FakeRepositoryGateway

    clock = FakeClock()
    gateway = FakeRepositoryGateway(activation_lag=2)
    waiter = StateWaiter(sleep=clock.sleep, clock=clock)
    controller = ResourceController(gateway, config, waiter=waiter)

    state = await controller.create(RepositorySpec(name="tf-1234-repo"))
    assert gateway.calls["get_by_name"] == 4
"""

from .clock import FakeClock
from .gateways import FakePublicIpGateway, FakeRepositoryGateway
from .payloads import classic_public_ip, repository_detail, repository_list_item, vpc_public_ip

__all__ = [
    "FakeClock",
    "FakePublicIpGateway",
    "FakeRepositoryGateway",
    "classic_public_ip",
    "repository_detail",
    "repository_list_item",
    "vpc_public_ip",
]
