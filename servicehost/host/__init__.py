"""Hosting runtime: lifecycle adapter and run mode launcher."""

from servicehost.host.adapter import FAILURE_EXIT_CODE, HostedService, HostState
from servicehost.host.capabilities import ArgumentReceiver, Disposer, Starter, Stopper

__all__ = [
    "ArgumentReceiver",
    "Disposer",
    "FAILURE_EXIT_CODE",
    "HostState",
    "HostedService",
    "Starter",
    "Stopper",
]
