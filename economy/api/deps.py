from fastapi import Header, HTTPException

from economy.core.config import settings
from economy.services.catalog.client import CatalogClient
from economy.services.economy_config import EconomyConfig, get_economy_config


def get_account_id(x_account_id: str | None = Header(default=None)) -> str:
    """Caller identity, resolved and verified by the auth layer in front of this service."""
    if not x_account_id or not x_account_id.strip():
        raise HTTPException(401, "Authentication required")
    return x_account_id.strip()


def get_country_code(
    cf_ipcountry: str | None = Header(default=None),
    x_country: str | None = Header(default=None),
) -> str | None:
    """Best effort: Cloudflare fills CF-IPCountry, the mobile SDK may send X-Country."""
    return (cf_ipcountry or x_country or "").strip().upper() or None


def get_config() -> EconomyConfig:
    return get_economy_config()


def get_catalog():
    catalog = CatalogClient()
    try:
        yield catalog
    finally:
        catalog.close()


def require_admin(x_admin_key: str | None = Header(default=None)) -> None:
    if not settings.admin_api_key or x_admin_key != settings.admin_api_key:
        raise HTTPException(status_code=401, detail="unauthorized")
