"""Idempotent container create/delete."""

from __future__ import annotations

from blobjack.base.exceptions import (
    ContainerAlreadyExistsError,
    ContainerNotFoundError,
    LifecycleError,
    StorageError,
)
from blobjack.base.logger import bj_logger
from blobjack.base.models import LifecycleOutcome

from .session import Session


class ContainerLifecycle:
    """Creates and deletes the container a session is bound to.

    Repeating a call never errors: the second ``create`` reports
    ``ALREADY_EXISTS`` and the second ``delete`` reports ``ALREADY_ABSENT``.

    Args:
        check_existence: Check ``container_exists`` before acting instead
            of relying on the store's conflict / not-found errors.
    """

    def __init__(self, check_existence: bool = False) -> None:
        self.check_existence = check_existence

    def create(self, session: Session) -> LifecycleOutcome:
        """Create the container.

        Raises:
            LifecycleError: For any store failure other than a conflict.
        """
        name = session.container_name
        try:
            if self.check_existence and session.container_exists():
                outcome = LifecycleOutcome.ALREADY_EXISTS
            else:
                session.create_container()
                outcome = LifecycleOutcome.CREATED
        except ContainerAlreadyExistsError:
            outcome = LifecycleOutcome.ALREADY_EXISTS
        except StorageError as e:
            raise LifecycleError(f"Failed to create container '{name}': {e}") from e
        bj_logger.info(f"Container {outcome.value}", container=name, operation="create_container")
        return outcome

    def delete(self, session: Session) -> LifecycleOutcome:
        """Delete the container.

        Raises:
            LifecycleError: For any store failure other than not-found.
        """
        name = session.container_name
        try:
            if self.check_existence and not session.container_exists():
                outcome = LifecycleOutcome.ALREADY_ABSENT
            else:
                session.delete_container()
                outcome = LifecycleOutcome.DELETED
        except ContainerNotFoundError:
            outcome = LifecycleOutcome.ALREADY_ABSENT
        except StorageError as e:
            raise LifecycleError(f"Failed to delete container '{name}': {e}") from e
        bj_logger.info(f"Container {outcome.value}", container=name, operation="delete_container")
        return outcome
