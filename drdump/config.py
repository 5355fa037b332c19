"""
drdump configuration
"""
import platform
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Command-line defaults, overridable through DRDUMP_* variables"""

    # Directory (or single ELF file) holding kernel debug info
    DEBUG_DIR: str = f"/usr/lib/debug/lib/modules/{platform.release()}"

    FORMAT: Literal["raw", "bpftrace", "stap"] = "raw"

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="DRDUMP_",
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )
