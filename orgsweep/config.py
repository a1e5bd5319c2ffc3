from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_FAN_OUT_WIDTH,
    DEFAULT_REGION,
    DEFAULT_ROLE_DURATION_SECONDS,
    DEFAULT_ROLE_NAME,
    DEFAULT_ROLE_SESSION_NAME,
    DEFAULT_STATE_DIR,
)
from .enums import AccountTier


class OrgSweepConfig(BaseModel):
    tenant_id: str
    # Cross-account role assumed in every member account
    role_name: str = DEFAULT_ROLE_NAME
    role_session_name: str = DEFAULT_ROLE_SESSION_NAME
    role_duration_seconds: int = Field(default=DEFAULT_ROLE_DURATION_SECONDS, ge=900)
    region: str = DEFAULT_REGION
    # Width of each enrichment batch during an account crawl
    fan_out_width: int = Field(default=DEFAULT_FAN_OUT_WIDTH, ge=1)
    account_tier: AccountTier = AccountTier.FREE
    # Directory where per-tenant crawl state JSON files are kept
    state_dir: str = DEFAULT_STATE_DIR
    log_level: str = "INFO"
