"""Object store blueprint, shared value types and core utilities.

Every provider adapter inherits from :class:`ObjectStoreBlueprint`.
Import it to type-hint your own code or to plug in a custom transport.
"""

from .store import ObjectStoreBlueprint
from .models import (
    Failure,
    Group,
    Leaf,
    LifecycleOutcome,
    ListingNode,
    ObjectData,
    ObjectInfo,
    Success,
    TransferOp,
    TransferRequest,
    TransferResult,
)
from .cancellation import CancellationToken
from .supported_services import existing_providers


__all__ = [
    "ObjectStoreBlueprint",
    "Failure",
    "Group",
    "Leaf",
    "LifecycleOutcome",
    "ListingNode",
    "ObjectData",
    "ObjectInfo",
    "Success",
    "TransferOp",
    "TransferRequest",
    "TransferResult",
    "CancellationToken",
    "existing_providers",
]
