from pydantic_settings import BaseSettings
from pydantic import AliasChoices, Field, field_validator
from functools import lru_cache
from typing import Optional

from .constants import (
    AUTO_START_DELAY_MS,
    DEFAULT_PACKAGE_ID,
    DISCOVERY_FETCH_DELAY_MS,
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables can come from:
    - docker-compose.yml environment section
    - .env file (for secrets like the sponsor key and API keys)
    - System environment

    Variable names match docker-compose conventions:
    - SUI_RPC, NETWORK, PACKAGE_ID, ADMIN_CAP_ID (for the ledger)
    - SPONSOR_PRIVATE_KEY (gas sponsor, suiprivkey... or 0x...)
    - POSTGRES_HOST, POSTGRES_PORT, etc. (for the room directory)
    - GOOGLE_CLIENT_ID (for login)
    """

    # Environment
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("environment", "node_env"),
    )
    port: int = 3001

    # Sui network
    sui_rpc_url: str = Field(
        default="https://fullnode.testnet.sui.io",
        validation_alias=AliasChoices("sui_rpc_url", "sui_rpc"),
    )
    sui_rpc_timeout_seconds: float = 15.0
    network: str = "testnet"

    # Gas sponsor (from .env)
    sponsor_private_key: str = ""

    # Smart contract
    package_id: str = DEFAULT_PACKAGE_ID
    contract_module: str = "money_race"
    event_module: str = "money_race_v2"
    admin_cap_id: str = ""

    # Mock USDC faucet
    usdc_package_id: str = Field(
        default="",
        validation_alias=AliasChoices("usdc_package_id", "usdc_faucet_package_id"),
    )
    usdc_faucet_id: str = ""

    # Google login (from .env)
    google_client_id: str = Field(
        default="",
        validation_alias=AliasChoices("google_client_id", "zklogin_client_id"),
    )

    # JWT session
    jwt_secret_key: str = Field(
        default="dev-secret-change-in-production",
        validation_alias=AliasChoices("jwt_secret_key", "jwt_secret"),
    )
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # Text generation (OpenAI-compatible endpoint)
    ai_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("ai_api_key", "eigenai_api_key", "openai_api_key"),
    )
    ai_base_url: str = "https://api-web.eigenai.com/api/v1"
    ai_model: str = "deepseek-v31-terminus"

    # PostgreSQL (from docker-compose)
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "moneyrace_user"
    postgres_password: str = "moneyrace_pass"
    postgres_db: str = "moneyrace"
    database_url: Optional[str] = Field(default=None, validate_default=True)

    # Frontend
    frontend_url: str = "http://localhost:3000"

    # Room creation timing
    auto_start_delay_seconds: float = AUTO_START_DELAY_MS / 1000
    discovery_fetch_delay_seconds: float = DISCOVERY_FETCH_DELAY_MS / 1000

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra env vars

    @field_validator('package_id', mode='before')
    @classmethod
    def default_package_id(cls, v):
        """An empty PACKAGE_ID means the default deployment"""
        return v or DEFAULT_PACKAGE_ID

    @field_validator('database_url', mode='before')
    @classmethod
    def construct_database_url(cls, v, info):
        """Construct database URL from components if not explicitly set"""
        if v:
            return v

        data = info.data
        host = data.get('postgres_host', 'localhost')
        port = data.get('postgres_port', 5432)
        user = data.get('postgres_user', 'moneyrace_user')
        password = data.get('postgres_password', 'moneyrace_pass')
        db = data.get('postgres_db', 'moneyrace')

        return f"postgresql://{user}:{password}@{host}:{port}/{db}"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
