from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

class Settings(BaseSettings):
    # App
    APP_NAME: str = "MCP Session Client"

    # Endpoint
    MCP_SERVER_URL: str = "http://localhost:8888/mcp"
    MCP_TIMEOUT_SECONDS: float = 30.0

    # Handshake
    MCP_PROTOCOL_VERSION: str = "2024-11-05"
    MCP_CLIENT_NAME: str = "automation-script"
    MCP_CLIENT_VERSION: str = "1.0"
    MCP_SESSION_HEADER: str = "mcp-session-id"

    # Responses carrying a different id than the request are rejected
    MCP_VERIFY_RESPONSE_IDS: bool = True

    # Logging
    MCP_LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

@lru_cache()
def get_settings() -> Settings:
    return Settings()
