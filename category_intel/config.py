"""Configuration management."""
import os


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    def __init__(self):
        self.EBAY_ACCESS_TOKEN: str = os.environ.get("EBAY_ACCESS_TOKEN", "")
        self.TAXONOMY_BASE_URL: str = os.environ.get(
            "TAXONOMY_BASE_URL", "https://api.ebay.com/commerce/taxonomy/v1"
        )
        self.MARKETPLACE_ID: str = os.environ.get("MARKETPLACE_ID", "EBAY_US")
        self.TAXONOMY_TIMEOUT: float = float(os.environ.get("TAXONOMY_TIMEOUT", "10"))
        self.MAX_SUGGESTIONS: int = int(os.environ.get("MAX_SUGGESTIONS", "3"))
        self.MAX_METRICS: int = int(os.environ.get("MAX_METRICS", "1000"))
        self.PARTIAL_RESULTS: bool = _env_bool("PARTIAL_RESULTS")
        self.REDIS_URL: str = os.environ.get("REDIS_URL", "")
        self.LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO").upper()

    def validate(self):
        if not self.EBAY_ACCESS_TOKEN:
            raise ValueError("EBAY_ACCESS_TOKEN is not set")
        if self.MAX_SUGGESTIONS < 1:
            raise ValueError("MAX_SUGGESTIONS must be at least 1")
        if self.TAXONOMY_TIMEOUT <= 0:
            raise ValueError("TAXONOMY_TIMEOUT must be positive")


config = Config()
