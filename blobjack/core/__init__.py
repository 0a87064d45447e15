"""Transfer core: key index, sessions, pipeline and container lifecycle."""

from .key_index import build_listing, walk
from .lifecycle import ContainerLifecycle
from .pipeline import TransferPipeline
from .session import Lease, Session, SessionManager

__all__ = [
    "build_listing",
    "walk",
    "ContainerLifecycle",
    "TransferPipeline",
    "Lease",
    "Session",
    "SessionManager",
]
