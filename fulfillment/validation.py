"""
Wiring checks for the run store and the workflow gateway.

The use case, the engine and the container accept their collaborators as
plain objects; each is checked against its ``@runtime_checkable``
Protocol when it is handed over, so a container that wires a Minio client
where a run repository belongs fails at startup rather than on the first
workflow start.
"""

import logging
from typing import Type, TypeVar

from fulfillment.repositories import WorkflowGateway, WorkflowRunRepository

logger = logging.getLogger(__name__)

P = TypeVar("P")


class RepositoryValidationError(Exception):
    """Raised when a dependency does not satisfy its Protocol"""

    pass


def ensure_protocol(
    implementation: object, protocol: Type[P], role: str
) -> P:
    """
    Return ``implementation`` typed as ``protocol``.

    Args:
        implementation: Object about to be wired in
        protocol: Protocol it must satisfy
        role: What the object is used as, for the error message

    Raises:
        RepositoryValidationError: If a Protocol method is missing
    """
    name = type(implementation).__name__
    if not isinstance(implementation, protocol):  # type: ignore[misc]
        logger.error(
            "Dependency failed protocol check",
            extra={
                "implementation": name,
                "protocol_name": protocol.__name__,
                "role": role,
            },
        )
        raise RepositoryValidationError(
            f"{name} cannot be used as the {role}: it does not implement "
            f"{protocol.__name__}"
        )
    logger.debug(
        "Dependency passed protocol check",
        extra={"implementation": name, "role": role},
    )
    return implementation  # type: ignore[return-value]


def ensure_workflow_run_repository(repo: object) -> WorkflowRunRepository:
    return ensure_protocol(repo, WorkflowRunRepository, "workflow run store")


def ensure_workflow_gateway(gateway: object) -> WorkflowGateway:
    return ensure_protocol(gateway, WorkflowGateway, "workflow gateway")
