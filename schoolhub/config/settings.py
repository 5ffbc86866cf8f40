import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


DEFAULT_TUTOR_MODELS = (
    "openrouter/polaris-alpha,"
    "microsoft/phi-3-medium-4k-instruct:free,"
    "meta-llama/llama-3.1-8b-instruct:free,"
    "qwen/qwen-2.5-1.5b:free,"
    "huggingfaceh4/zephyr-orpo-141b-a35b:free"
)


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    # MongoDB settings
    MONGO_URI: str = os.getenv('MONGO_URI', 'mongodb://localhost:27017')
    MONGO_DB_NAME: str = os.getenv('MONGO_DB_NAME', 'schoolhub')

    # Text generation provider (OpenRouter compatible chat completions)
    OPENROUTER_API_KEY: Optional[str] = os.getenv('OPENROUTER_API_KEY') or None
    OPENROUTER_BASE_URL: str = os.getenv('OPENROUTER_BASE_URL', 'https://openrouter.ai/api/v1')
    APP_URL: str = os.getenv('APP_URL', 'https://schoolapp.com')
    TUTOR_MODELS: List[str] = _split_csv(os.getenv('TUTOR_MODELS', DEFAULT_TUTOR_MODELS))
    TUTOR_REQUEST_TIMEOUT: float = float(os.getenv('TUTOR_REQUEST_TIMEOUT', '15'))
    TUTOR_MAX_TOKENS: int = int(os.getenv('TUTOR_MAX_TOKENS', '800'))
    TUTOR_TEMPERATURE: float = float(os.getenv('TUTOR_TEMPERATURE', '0.8'))
    TUTOR_TOP_P: float = float(os.getenv('TUTOR_TOP_P', '0.9'))
    TUTOR_RETRY_DELAY: float = float(os.getenv('TUTOR_RETRY_DELAY', '0.5'))

    # Tutor history settings
    TUTOR_CONTEXT_LIMIT: int = int(os.getenv('TUTOR_CONTEXT_LIMIT', '30'))
    LEARNING_HISTORY_LIMIT: int = int(os.getenv('LEARNING_HISTORY_LIMIT', '50'))

    # Logging / monitoring
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO').upper()
    SENTRY_DSN: Optional[str] = os.getenv('SENTRY_DSN') or None

    ALLOWED_ORIGINS: List[str] = _split_csv(os.getenv('ALLOWED_ORIGINS', '*'))

settings = Settings()
