"""
Pydantic schemas for the developer read API.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from developer_tracking import RiskLevel, TokenStatus


# =======================
# DEVELOPERS
# =======================

class DeveloperResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    primary_wallet: str
    display_name: Optional[str] = None
    total_tokens_launched: int
    migrated_tokens: int
    bonded_tokens: int
    failed_tokens: int
    migration_success_rate: int
    reputation_score: int
    risk_score: int
    is_suspicious: bool
    risk_patterns: List[str]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DeveloperListResponse(BaseModel):
    count: int
    data: List[DeveloperResponse]


# =======================
# PROFILE
# =======================

class WalletResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    wallet_address: str
    confidence: int
    association_method: str
    created_at: Optional[datetime] = None


class TokenResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    token_address: str
    status: TokenStatus
    name: Optional[str] = None
    symbol: Optional[str] = None
    launched_at: Optional[datetime] = None
    migrated_at: Optional[datetime] = None


class SocialLinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    platform: str
    handle: str
    external_user_id: Optional[str] = None
    linkage_type: str
    verified: bool


class DeveloperProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    developer: DeveloperResponse
    wallets: List[WalletResponse]
    tokens: List[TokenResponse]
    social_links: List[SocialLinkResponse]


# =======================
# RISK
# =======================

class RiskReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    developer_id: int
    risk_score: int
    is_suspicious: bool
    patterns: List[str]
    level: RiskLevel
    factors: List[str]


# =======================
# SERVICE
# =======================

class StatsResponse(BaseModel):
    running: bool
    total_applied: int
    total_failed: int
    sources: Dict[str, Dict[str, Any]]
