from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_name: str = "storefront-api"
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    public_base_url: str = Field(
        default="http://localhost:8000",
        validation_alias="PUBLIC_BASE_URL"
    )
    cors_allowed_origins: List[str] = Field(
        default=["*"],
        validation_alias="CORS_ALLOWED_ORIGINS"
    )

    # Database
    database_url: Optional[str] = Field(None, validation_alias="DATABASE_URL")
    run_migrations: bool = Field(default=True, validation_alias="RUN_MIGRATIONS")

    # Supabase Storage (service role key never leaves the server)
    supabase_url: Optional[str] = Field(None, validation_alias="SUPABASE_URL")
    supabase_service_role_key: Optional[str] = Field(None, validation_alias="SUPABASE_SERVICE_ROLE_KEY")

    bucket_public: str = Field(default="gh-public", validation_alias="BUCKET_PUBLIC")
    bucket_downloads: str = Field(default="gh-downloads", validation_alias="BUCKET_DOWNLOADS")
    bucket_logos: str = Field(default="gh-logos", validation_alias="BUCKET_LOGOS")
    bucket_avatars: str = Field(default="gh-avatars", validation_alias="BUCKET_AVATARS")
    bucket_temp: str = Field(default="gh-temp", validation_alias="BUCKET_TEMP")

    # Upload ceilings, checked before anything is sent to storage
    max_upload_encoded_bytes: int = Field(
        default=64 * 1024 * 1024,
        validation_alias="MAX_UPLOAD_ENCODED_BYTES"
    )
    max_upload_bytes: int = Field(
        default=48 * 1024 * 1024,
        validation_alias="MAX_UPLOAD_BYTES"
    )

    # Chain RPC
    chain_rpc_url: Optional[str] = Field(None, validation_alias="CHAIN_RPC_URL")
    chain_rpc_timeout_seconds: float = Field(default=10.0, validation_alias="CHAIN_RPC_TIMEOUT_SECONDS")
    payment_event_signature: str = Field(
        default="TipSent(address,uint256)",
        validation_alias="PAYMENT_EVENT_SIGNATURE"
    )
    payment_contract_address: Optional[str] = Field(None, validation_alias="PAYMENT_CONTRACT_ADDRESS")

    # Entitlement TTLs (seconds)
    token_ttl_seconds: int = Field(default=86400, validation_alias="TOKEN_TTL_SECONDS")
    signed_url_ttl_seconds: int = Field(default=600, validation_alias="SIGNED_URL_TTL_SECONDS")
    download_url_ttl_seconds: int = Field(default=600, validation_alias="DOWNLOAD_URL_TTL_SECONDS")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def missing_required(self) -> List[str]:
        """Names of the environment variables the service cannot work without."""
        required = {
            "DATABASE_URL": self.database_url,
            "SUPABASE_URL": self.supabase_url,
            "SUPABASE_SERVICE_ROLE_KEY": self.supabase_service_role_key,
            "CHAIN_RPC_URL": self.chain_rpc_url,
        }
        return [name for name, value in required.items() if not value]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
