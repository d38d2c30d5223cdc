"""Application configuration values, overridable through the environment or a .env file."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

GEMINI_ENDPOINT: str = os.getenv(
    "GEMINI_ENDPOINT", "https://generativelanguage.googleapis.com/v1beta"
).strip().rstrip("/")
GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash-image").strip()
REQUEST_TIMEOUT: int = int(os.getenv("REQUEST_TIMEOUT", "120"))  # seconds

API_BASE_URL: str = os.getenv("API_BASE_URL", "http://127.0.0.1:8000").strip().rstrip("/")
CORS_ORIGINS: list[str] = [
    origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
]

CREDENTIAL_FILE: Path = Path(
    os.getenv("CREDENTIAL_FILE", str(Path.home() / ".manga_redraw" / "settings.json"))
).expanduser()

ACCEPTED_MIME_TYPES: tuple[str, ...] = ("image/png", "image/jpeg", "image/webp")

# Editor
BRUSH_MIN: int = 5
BRUSH_MAX: int = 100
BRUSH_STEP: int = 5
BRUSH_DEFAULT: int = 20
BRUSH_COLOR: tuple[int, int, int, int] = (255, 0, 0, 128)
POLYGON_CLOSE_RADIUS: float = 10.0  # image pixels
MIN_ZOOM: float = 0.1
MAX_ZOOM: float = 10.0
MAX_HISTORY: int = 50
