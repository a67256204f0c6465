from typing import Optional, List
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings with automatic loading from .env file"""

    # Database configuration
    mongo_uri: str = Field(default="mongodb://localhost:27017", alias="MONGODB_URI")
    mongo_db_name: str = Field(default="content_auth", alias="MONGO_DB_NAME")
    mongo_server_selection_timeout_ms: int = Field(default=5000, alias="MONGO_SERVER_SELECTION_TIMEOUT_MS")

    # Web3 Storage (IPFS) settings
    web3_storage_service_url: str = Field(default="http://localhost:8080", alias="WEB3_STORAGE_SERVICE_URL")
    blob_store_enabled: bool = Field(default=True, alias="BLOB_STORE_ENABLED")

    # Blockchain settings
    ledger_enabled: bool = Field(default=True, alias="LEDGER_ENABLED")
    sepolia_rpc_url: Optional[str] = Field(None, alias="SEPOLIA_RPC_URL")
    sepolia_private_key: Optional[str] = Field(None, alias="SEPOLIA_PRIVATE_KEY")
    media_registry_address: Optional[str] = Field(None, alias="MEDIA_REGISTRY_ADDRESS")

    # Upload and registration behaviour
    external_call_timeout_seconds: float = Field(default=10.0, alias="EXTERNAL_CALL_TIMEOUT_SECONDS")
    max_upload_bytes: int = Field(default=50 * 1024 * 1024, alias="MAX_UPLOAD_BYTES")
    unattributed_owner: str = Field(default="unattributed", alias="UNATTRIBUTED_OWNER")

    # Application settings
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    cors_origins: str = Field(default="http://localhost:3000,http://localhost:3001", alias="CORS_ORIGINS")

    @property
    def ledger_configured(self) -> bool:
        """True when every value needed to sign registry transactions is present"""
        return bool(
            self.ledger_enabled
            and self.sepolia_rpc_url
            and self.sepolia_private_key
            and self.media_registry_address
        )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        if "," in self.cors_origins:
            return [origin.strip() for origin in self.cors_origins.split(",")]
        return [self.cors_origins.strip()]

    class Config:
        env_file = [".env"]
        env_file_encoding = 'utf-8'
        case_sensitive = False
        populate_by_name = True
        extra = "ignore"


# Create a singleton instance
settings = Settings()
