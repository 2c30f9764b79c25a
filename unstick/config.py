from decimal import Decimal
from pathlib import Path
from typing import List

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # RPC Endpoints (RPC2/RPC3 fall back to RPC1 when unset)
    polygon_rpc_url: str = Field(
        default="https://polygon-rpc.com",
        description="Primary Polygon RPC endpoint",
    )
    polygon_rpc_url2: str = Field(
        default="",
        description="Transaction-dedicated RPC endpoint, preferred for sends",
    )
    polygon_rpc_url3: str = Field(
        default="",
        description="Fallback transaction RPC endpoint",
    )
    chain_id: int = Field(default=137, description="Chain ID used when signing")

    # Timeouts
    rpc_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Per-call upstream RPC timeout",
    )
    request_timeout_seconds: int = Field(default=30, description="Request timeout")

    # Recovery policy
    default_gas_price_gwei: Decimal = Field(
        default=Decimal("200"),
        gt=0,
        description="Gas price used for replacement transactions when the caller omits one",
    )
    max_gas_price_gwei: Decimal = Field(
        default=Decimal("5000"),
        gt=0,
        description="Highest gas price accepted from callers",
    )
    self_transfer_gas: int = Field(
        default=21000,
        ge=21000,
        description="Gas limit for zero-value self-transfers",
    )
    serialize_heals: bool = Field(
        default=True,
        description="Hold a per-account lock for the duration of each heal",
    )

    # Credential store
    profiles_path: Path = Field(
        default=BASE_DIR / "data" / "profiles.json",
        description="JSON file holding wallet profiles for the default signer resolver",
    )

    @model_validator(mode="after")
    def _check_timeouts(self) -> "Settings":
        if self.rpc_timeout_seconds >= self.request_timeout_seconds:
            raise ValueError(
                "rpc_timeout_seconds must be lower than request_timeout_seconds"
            )
        if self.default_gas_price_gwei > self.max_gas_price_gwei:
            raise ValueError("default_gas_price_gwei exceeds max_gas_price_gwei")
        return self

    def rpc_urls(self) -> List[str]:
        """Endpoint URLs in preference order, transaction endpoints first."""
        primary = self.polygon_rpc_url
        return [
            self.polygon_rpc_url2 or primary,
            self.polygon_rpc_url3 or primary,
            primary,
        ]


# Global settings instance
settings = Settings()
