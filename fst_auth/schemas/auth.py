from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from fst_auth.models.account import Role


class NonceRequest(BaseModel):
    """Request model for challenge generation - input validation"""

    walletAddress: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("walletAddress", "address"),
        description="Wallet address (base58 public key)",
    )


class NonceResponse(BaseModel):
    """Response model for challenge generation - output"""

    success: bool = True
    nonce: str
    message: str


class VerifyRequest(BaseModel):
    """Request model for wallet verification - input validation"""

    walletAddress: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("walletAddress", "address"),
        description="Wallet address (base58 public key)",
    )
    signature: Optional[str] = Field(None, description="Signature of the challenge message, base64 or base58")


class AuthResponse(BaseModel):
    """Response model for authentication - output"""

    success: bool = True
    token: str
    wallet: str
    role: Role


class IntrospectResponse(BaseModel):
    ok: bool
    active: bool
    wallet: Optional[str] = None
    role: Optional[Role] = None
    error: Optional[str] = None


class MeResponse(BaseModel):
    success: bool = True
    wallet: str
    role: Role
    displayName: Optional[str] = None


class AccountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    wallet_address: str
    role: Role
    display_name: Optional[str] = None
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None


class AccountListResponse(BaseModel):
    success: bool = True
    accounts: List[AccountOut] = Field(default_factory=list)
    total: int = 0
    limit: int = 20
    offset: int = 0


class RoleUpdateRequest(BaseModel):
    role: Role
