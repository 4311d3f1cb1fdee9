# backend/core/config.py
import os
from typing import List, Literal
from dotenv import load_dotenv

class Settings:
    """
    Setup environment variables.
        - JWT_SECRET / JWT_ALGORITHM verify the bearer tokens issued by the auth service
        - ROOMS_FILE / MESSAGES_FILE where rooms and messages are persisted ("" = memory only)
        - PUB_SUB_SERVICE the live relay to use: "local" (single process) or "redis"
        - GROQ_API_KEY enables the assistant reply for messages containing ASSISTANT_TRIGGER
    """

    # Load environment variables from the .env file
    load_dotenv()

    JWT_SECRET: str = os.getenv("JWT_SECRET", "change-me")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")

    ROOMS_FILE: str = os.getenv("ROOMS_FILE", "rooms.json")
    MESSAGES_FILE: str = os.getenv("MESSAGES_FILE", "messages.jsonl")

    PUB_SUB_SERVICE: Literal["local", "redis"] = os.getenv("PUB_SUB_SERVICE", "local")

    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_ACCESS_KEY: str = os.getenv("REDIS_ACCESS_KEY", "")

    GROQ_API_KEY: str = os.getenv("GROQ_API_KEY", "")
    ASSISTANT_BASE_URL: str = os.getenv("ASSISTANT_BASE_URL", "https://api.groq.com/openai/v1")
    ASSISTANT_MODEL: str = os.getenv("ASSISTANT_MODEL", "llama3-8b-8192")
    ASSISTANT_TRIGGER: str = os.getenv("ASSISTANT_TRIGGER", "/help")
    ASSISTANT_TIMEOUT_SECONDS: float = float(os.getenv("ASSISTANT_TIMEOUT_SECONDS", "10"))

    ALLOWED_ORIGINS: List[str] = [
        o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()
    ]

    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

settings = Settings()
