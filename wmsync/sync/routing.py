"""Routing from responsibility names to confirm primitives."""

import logging
from collections.abc import Awaitable, Callable, Mapping

from wmsync.errors import InvalidResponsibilityError
from wmsync.sync.models import ConfirmResult

logger = logging.getLogger(__name__)

ConfirmPrimitive = Callable[[str], Awaitable[ConfirmResult]]


class ConfirmRoutingTable:
    """Maps each responsibility to the primitive that confirms its transactions."""

    def __init__(self, routes: Mapping[str, ConfirmPrimitive] | None = None) -> None:
        self._routes: dict[str, ConfirmPrimitive] = dict(routes or {})

    def __contains__(self, responsibility: object) -> bool:
        return responsibility in self._routes

    def __len__(self) -> int:
        return len(self._routes)

    def names(self) -> list[str]:
        return list(self._routes)

    def register(self, responsibility: str, confirm: ConfirmPrimitive) -> None:
        if responsibility in self._routes:
            logger.warning("Replacing confirm route for %s", responsibility)
        self._routes[responsibility] = confirm

    def resolve(self, responsibility: str) -> ConfirmPrimitive:
        """Look up the confirm primitive of a responsibility.

        Raises:
            InvalidResponsibilityError: If no route is registered.
        """
        try:
            return self._routes[responsibility]
        except KeyError:
            raise InvalidResponsibilityError(responsibility) from None
