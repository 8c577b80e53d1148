"""Primary/backup endpoint selection.

The active endpoint starts at the primary mirror and moves to the backup the
first time a request against the primary gets no response.  The switch is
one-way for the lifetime of the selector.
"""

from __future__ import annotations

import enum
import logging
import threading
from urllib.parse import quote

from ..settings import EndpointConfig
from .policy import CATALOG_PATH, MODULE_PATH_TEMPLATE

logger = logging.getLogger(__name__)

__all__ = ["Endpoint", "EndpointSelector"]


class Endpoint(enum.Enum):
    PRIMARY = "primary"
    BACKUP = "backup"


class EndpointSelector:
    """Tracks which registry mirror new requests should target."""

    def __init__(self, config: EndpointConfig) -> None:
        self._bases = {
            Endpoint.PRIMARY: config.primary_url,
            Endpoint.BACKUP: config.backup_url,
        }
        self._active = Endpoint.PRIMARY
        self._lock = threading.Lock()

    @property
    def active(self) -> Endpoint:
        return self._active

    def base_url(self, endpoint: Endpoint) -> str:
        return self._bases[endpoint]

    def catalog_url(self, endpoint: Endpoint) -> str:
        return self._bases[endpoint] + CATALOG_PATH

    def module_url(self, endpoint: Endpoint, identifier: str) -> str:
        return self._bases[endpoint] + MODULE_PATH_TEMPLATE.format(
            identifier=quote(identifier, safe="")
        )

    def switch_to_backup(self) -> bool:
        """Make the backup mirror active; returns ``True`` if this call switched it."""

        with self._lock:
            if self._active is Endpoint.BACKUP:
                return False
            self._active = Endpoint.BACKUP
        logger.warning(
            "Switching module registry to backup mirror",
            extra={"backup_url": self._bases[Endpoint.BACKUP]},
        )
        return True
