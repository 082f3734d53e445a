from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    confidence_minimum: float = 30
    confidence_acceptable: float = 60
    confidence_good: float = 80
    confidence_excellent: float = 95
    allow_manual_entry: bool = True
    allow_retry: bool = True
    max_retries: int = 2
    suggest_image_improvement: bool = True
    provide_partial_results: bool = True
    max_ingredients: int = 20
    text_provider: str = 'tesseract'
    max_image_bytes: int = 10 * 1024 * 1024
    host: str = '127.0.0.1'
    port: int = 8002
    log_level: str = 'INFO'
    version: str = '1.0.0'


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
