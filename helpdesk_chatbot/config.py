from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Database Configuration
    DATABASE_URL: str

    # Helpdesk core API (tickets, messages, realtime events)
    HELPDESK_API_URL: str = "http://localhost:3001/api"
    HELPDESK_API_TOKEN: str | None = None
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Interpreter
    # Upper bound on nodes visited in a single run (guards cyclic graphs)
    CHATBOT_MAX_STEPS: int = 50

    # Sent when a flow is outside its operating hours and defines no message of its own
    DEFAULT_OFFLINE_MESSAGE: str = (
        "We are currently outside our business hours. "
        "We will get back to you as soon as possible."
    )

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Loads from a .env file in the root directory
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

# Singleton instance
settings = Settings()
