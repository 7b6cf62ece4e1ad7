import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()  # loads .env for local dev


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    env: str = os.getenv("ENV", "local")
    service_name: str = os.getenv("SERVICE_NAME", "dthstore-api")

    # Lead persistence: none | rest | firestore | bridge
    leads_backend: str = os.getenv("LEADS_BACKEND", "none")
    rest_api_url: str = os.getenv("REST_API_URL", "")
    firestore_project: str = os.getenv("FIRESTORE_PROJECT", "")

    # Local cache (JSON key-value file)
    cache_path: str = os.getenv("CACHE_PATH", "data/cache.json")

    http_timeout_seconds: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "15"))

    # Default for the WhatsApp bridge until an admin saves notification settings
    whatsapp_api_url: str = os.getenv("WHATSAPP_API_URL", "")

    # Staff auth
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-in-prod")
    demo_mode: bool = _flag("DEMO_MODE", "true")

    # Facebook lead ads webhook
    fb_verify_token: str = os.getenv("FB_VERIFY_TOKEN", "dthstore_fb_token")

    anthropic_api_key: str = os.getenv("ANTHROPIC_API_KEY", "")

settings = Settings()
