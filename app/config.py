import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Local SQLite file unless a real database is configured
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./marketplace.db")

# Frontend base URL for links in emails
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# CORS origins for both REST and the realtime socket
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,https://panikkaran.vercel.app",
).split(",")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Panikkaran <noreply@panikkaran.app>")

# Optional Redis mirror for websocket event rate limiting
REDIS_URL = os.getenv("REDIS_URL")

# Max sendMessage/typing events per connection inside one window
WS_EVENT_RATE_LIMIT = int(os.getenv("WS_EVENT_RATE_LIMIT", "30"))
WS_EVENT_RATE_WINDOW = int(os.getenv("WS_EVENT_RATE_WINDOW", "10"))  # seconds

# How long an in-memory last-seen entry stays in presence broadcasts
LAST_SEEN_RETENTION_SECONDS = int(os.getenv("LAST_SEEN_RETENTION_SECONDS", "86400"))
