"""
Shared Configuration Module

Central configuration management for the maintenance CLI and admin API
"""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # ===== Database Configuration =====
    database_url: str = "mysql+pymysql://root:@localhost:3306/medhome"
    sql_echo: bool = False

    # ===== Phone Number Repair =====
    phone_table: str = "login"
    phone_id_column: str = "id"
    phone_value_column: str = "number"
    phone_column_length: int = 20
    phone_unique_index: str = "number"
    placeholder_prefix: str = "pending"

    # ===== Backend Settings =====
    backend_host: str = "0.0.0.0"
    backend_port: int = 8000

    # ===== Logging =====
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance

    Returns:
        Settings instance
    """
    return Settings()


# ===== Constants =====

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

