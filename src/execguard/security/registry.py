"""
Named cache of command policies.

One registry instance is created at the composition root and handed to every
coordinator that should share policies; there is no module-level registry.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from execguard.security.policy import CommandPolicy

logger = logging.getLogger(__name__)

DEFAULT_POLICY_NAME = "default"


class PolicyRegistry:
    """
    Thread-safe name -> CommandPolicy mapping with get-or-create.

    Example:
        >>> registry = PolicyRegistry()
        >>> policy = registry.get_or_create("ci", lambda: CommandPolicy().with_allowed("pytest"))
        >>> registry.get("ci") is policy
        True
    """

    def __init__(self) -> None:
        self._policies: dict[str, CommandPolicy] = {}
        self._lock = threading.Lock()

    def get_or_create(self, name: str, factory: Callable[[], CommandPolicy]) -> CommandPolicy:
        """
        Return the policy registered under ``name``, creating it if absent.

        ``factory`` runs at most once per name, under the registry lock.
        """
        with self._lock:
            policy = self._policies.get(name)
            if policy is None:
                policy = factory()
                self._policies[name] = policy
                logger.debug("Registered policy %r", name)
            return policy

    def register(self, name: str, policy: CommandPolicy, *, replace: bool = False) -> None:
        """
        Register ``policy`` under ``name``.

        Raises:
            KeyError: If ``name`` is taken and ``replace`` is False.
        """
        with self._lock:
            if name in self._policies and not replace:
                raise KeyError(f"Policy '{name}' is already registered")
            self._policies[name] = policy

    def get(self, name: str) -> CommandPolicy | None:
        with self._lock:
            return self._policies.get(name)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._policies)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._policies

    def __len__(self) -> int:
        with self._lock:
            return len(self._policies)
