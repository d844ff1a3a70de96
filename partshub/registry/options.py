"""Construction options for registries."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from partshub.github.abc import GitHub

DEFAULT_RESOLVE_TIMEOUT = 10.0


@dataclass
class RegistryOptions:
    """Collaborators and knobs for a ``GitHubRegistry``.

    Attributes:
        client: Transport used for every network call. When None, the
            registry builds its own ``RealGitHub``; nothing is shared
            between registries.
        resolve_timeout: Upper bound, in seconds, for resolving the
            registry's ref to a commit SHA.
        logger: Where the registry logs. Defaults to the
            ``partshub.registry`` logger, which is silent unless the host
            application configures logging.
    """

    client: GitHub | None = None
    resolve_timeout: float = DEFAULT_RESOLVE_TIMEOUT
    logger: logging.Logger | None = None

    def get_logger(self) -> logging.Logger:
        return self.logger or logging.getLogger("partshub.registry")
