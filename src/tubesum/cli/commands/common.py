"""Shared helpers for CLI command modules."""

from __future__ import annotations

from typing import Callable

from tubesum.services.container import ServiceContainer

ContainerFactory = Callable[[], ServiceContainer]


class ExitCode:
    """Mapping of meaningful CLI exit codes."""

    SUCCESS = 0
    INVALID_INPUT = 1
    NOT_FOUND = 2
    NETWORK_ERROR = 3
    PROCESSING_ERROR = 4
    STORAGE_ERROR = 5


async def close_container(container: ServiceContainer) -> None:
    await container.aclose()


__all__ = ["ContainerFactory", "ExitCode", "close_container"]
