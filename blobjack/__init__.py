"""Blobjack: provider-agnostic blob storage client core and CLI.

Entry point for the library. Build an :class:`Orchestrator` for a
provider and call its container and blob operations::

    from blobjack import Orchestrator

    with Orchestrator.for_provider("azure", {"account_name": "acct"}) as orch:
        orch.create_container("photos")
        orch.write("photos", "2024/cat.txt", "meow")
"""

from .base import (
    ObjectStoreBlueprint,
    CancellationToken,
    LifecycleOutcome,
    TransferRequest,
)
from .factory import store_factory
from .orchestrator import Orchestrator

__all__ = [
    "ObjectStoreBlueprint",
    "CancellationToken",
    "LifecycleOutcome",
    "TransferRequest",
    "store_factory",
    "Orchestrator",
]
