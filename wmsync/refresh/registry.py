"""Registry of the backend APIs behind each responsibility.

Each responsibility maps to one API configuration describing where the
data lives, what kind of feed it is, and which URL segments it needs.
The defaults cover the master, configuration and transactional feeds of
the warehouse backend; deployments can extend or override them through
configuration.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Literal

from pydantic import BaseModel

from wmsync.activity.models import ApiType
from wmsync.errors import InvalidResponsibilityError

logger = logging.getLogger(__name__)

EBS_20D = "EBS/20D"
EBS_23A = "EBS/23A"
EBS_23B = "EBS/23B"


class ApiConfig(BaseModel):
    """Backend API behind one responsibility."""

    api_name: str
    url: str
    type: ApiType
    requires_org_id: bool = False
    requires_default_org_id: bool = False
    table_type: Literal["json", "table"] = "json"
    version: str = EBS_20D
    last_sync_time: bool = False
    full_refresh: bool = False


MASTER_APIS: dict[str, ApiConfig] = {
    "ITEM": ApiConfig(
        api_name="Items",
        url=f"{EBS_20D}/getItemsTable",
        type=ApiType.master,
        requires_org_id=True,
        table_type="table",
        last_sync_time=True,
    ),
    "ACCOUNT": ApiConfig(
        api_name="GL Accounts",
        url=f"{EBS_20D}/getGLAccounts",
        type=ApiType.master,
        requires_default_org_id=True,
    ),
    "SUB_INV": ApiConfig(
        api_name="Sub Inventories",
        url=f"{EBS_20D}/getSubinventories",
        type=ApiType.master,
        requires_org_id=True,
        last_sync_time=True,
        full_refresh=True,
    ),
    "LOCATORS": ApiConfig(
        api_name="Locators",
        url=f"{EBS_23A}/getLocatorsTable",
        type=ApiType.master,
        requires_org_id=True,
        table_type="table",
        version=EBS_23A,
        last_sync_time=True,
    ),
}

CONFIG_APIS: dict[str, ApiConfig] = {
    "REASON": ApiConfig(
        api_name="Reasons",
        url=f"{EBS_20D}/getReasons",
        type=ApiType.config,
    ),
    "GL_PERIODS": ApiConfig(
        api_name="GL Periods",
        url=f"{EBS_20D}/getGLPeriods",
        type=ApiType.config,
        requires_default_org_id=True,
    ),
    "INVENTORY_PERIODS": ApiConfig(
        api_name="Inventory Periods",
        url=f"{EBS_20D}/getInventoryPeriods",
        type=ApiType.config,
        requires_org_id=True,
        requires_default_org_id=True,
    ),
}

TRANSACTIONAL_APIS: dict[str, ApiConfig] = {
    "SHIP_CONFIRM": ApiConfig(
        api_name="Shipping Orders",
        url=f"{EBS_23B}/getSalesOrdersForShippingTable",
        type=ApiType.transactional,
        requires_org_id=True,
        table_type="table",
        version=EBS_23B,
        last_sync_time=True,
    ),
}

DEFAULT_APIS: dict[str, ApiConfig] = {
    **MASTER_APIS,
    **CONFIG_APIS,
    **TRANSACTIONAL_APIS,
}


class ResponsibilityRegistry:
    """Lookup of API configurations by responsibility name."""

    def __init__(self, apis: Mapping[str, ApiConfig] | None = None) -> None:
        """Initialize the registry.

        Args:
            apis: Responsibility to API configuration. Defaults to the
                built-in warehouse APIs.
        """
        self._apis: dict[str, ApiConfig] = dict(
            DEFAULT_APIS if apis is None else apis
        )

    def __contains__(self, responsibility: object) -> bool:
        return responsibility in self._apis

    def __len__(self) -> int:
        return len(self._apis)

    def names(self) -> list[str]:
        return list(self._apis)

    def register(self, responsibility: str, config: ApiConfig) -> None:
        """Add or replace the API configuration of a responsibility."""
        if responsibility in self._apis:
            logger.info("Overriding API configuration for %s", responsibility)
        self._apis[responsibility] = config

    def get(self, responsibility: str) -> ApiConfig:
        """Return the API configuration of a responsibility.

        Raises:
            InvalidResponsibilityError: If the responsibility is unknown.
        """
        try:
            return self._apis[responsibility]
        except KeyError:
            raise InvalidResponsibilityError(responsibility) from None

    def api_type(self, responsibility: str) -> ApiType:
        """Type of the responsibility's API, unknown when not registered."""
        config = self._apis.get(responsibility)
        return config.type if config else ApiType.unknown

    def known(self, responsibilities: Iterable[str]) -> list[str]:
        """Filter responsibilities down to registered ones, keeping order."""
        return [r for r in responsibilities if r in self._apis]

    def build_path(
        self,
        responsibility: str,
        org_id: str | None = None,
        default_org_id: str | None = None,
        last_sync_time: str = "''",
        full_refresh: str = "Y",
    ) -> str:
        """Build the relative request path for a responsibility.

        Segments are appended in order: default org id, org id, last sync
        time, full refresh flag, each only when the API asks for it.

        Args:
            responsibility: Responsibility to build the path for.
            org_id: Selected inventory organization.
            default_org_id: The user's default organization.
            last_sync_time: Value of the last-sync segment.
            full_refresh: Value of the full-refresh segment.

        Returns:
            Relative path without a leading slash.

        Raises:
            InvalidResponsibilityError: If the responsibility is unknown.
            ValueError: If a required org id is missing.
        """
        config = self.get(responsibility)
        path = config.url

        if config.requires_default_org_id:
            if not default_org_id:
                raise ValueError(
                    f"API {responsibility} requires defaultOrgId but none provided"
                )
            path = f"{path}/{default_org_id}"

        if config.requires_org_id:
            if not org_id:
                raise ValueError(f"API {responsibility} requires orgId but none provided")
            path = f"{path}/{org_id}"

        if config.last_sync_time:
            path = f"{path}/{last_sync_time}"

        if config.full_refresh:
            path = f"{path}/{full_refresh}"

        return path

    def metadata_path(self, responsibility: str) -> str:
        """Relative path of the metadata endpoint for JSON APIs."""
        return f"{self.get(responsibility).url}/metadata"
