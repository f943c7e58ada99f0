from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Literal, Optional


class Settings(BaseSettings):
    """Application settings."""
    
    # Application
    APP_NAME: str = "findpi"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    
    # Probing
    PROBE_BACKEND: Literal["icmp", "nmap"] = "icmp"
    PROBE_TIMEOUT: float = 0.5  # seconds per echo request
    PROBE_COUNT: int = 1  # echo requests per host
    SCAN_DEADLINE: float = 120.0  # seconds for the whole sweep
    CONCURRENCY_PER_CORE: int = 32  # probes are I/O bound
    MAX_CONCURRENCY: Optional[int] = None  # overrides cores * CONCURRENCY_PER_CORE
    FILE_LIMIT: int = 8192  # soft RLIMIT_NOFILE requested before the sweep
    
    # Identification
    ARP_TIMEOUT: float = 10.0  # seconds to wait for `arp -a`
    RESOLVE_HOSTNAMES: bool = True
    OUI_DATABASE_PATH: Optional[str] = None  # packaged database if None
    
    # Output
    OUTPUT_DIR: Optional[str] = None  # user's home directory if None
    
    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
