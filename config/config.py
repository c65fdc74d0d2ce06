"""
Configuration - environment-driven settings for Janaru Voice Tasks
Values come from the process environment, with an optional .env file at the repo root
"""

import os
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent

load_dotenv(PROJECT_ROOT / ".env", override=False)

# Environment
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
IS_PRODUCTION = ENVIRONMENT == "production"

# For development/testing only - mock transcription, task extraction and calendar ids
MOCK_ENABLED = not IS_PRODUCTION

# Claude
CLAUDE_API_KEY = os.getenv("CLAUDE_API_KEY") or os.getenv("ANTHROPIC_API_KEY")
CLAUDE_API_MODEL = os.getenv("CLAUDE_API_MODEL", "claude-3-haiku-20240307")
CLAUDE_MAX_TOKENS = int(os.getenv("CLAUDE_MAX_TOKENS", "2000"))

# OpenAI speech-to-text
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_TRANSCRIPTION_MODEL = os.getenv("OPENAI_TRANSCRIPTION_MODEL", "whisper-1")

# Google Calendar
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")
GOOGLE_REFRESH_TOKEN = os.getenv("GOOGLE_REFRESH_TOKEN")
GOOGLE_ACCESS_TOKEN = os.getenv("GOOGLE_ACCESS_TOKEN")
GOOGLE_CALENDAR_ID = os.getenv("GOOGLE_CALENDAR_ID", "primary")
DEFAULT_TIME_ZONE = os.getenv("DEFAULT_TIME_ZONE", "America/New_York")

# Local files
DATA_DIR = Path(os.getenv("DATA_DIR", str(PROJECT_ROOT / "data")))
STORAGE_FILE = DATA_DIR / "storage.json"
SECURE_STORAGE_FILE = DATA_DIR / "secure_keys.json"
AUDIO_FOLDER = os.getenv("AUDIO_FOLDER", str(PROJECT_ROOT / "audio_files"))
SUPPORTED_FORMATS = ['.m4a', '.mp3', '.wav', '.aiff', '.mp4', '.mov', '.webm', '.ogg']

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "janaru.log")

# Keys in local storage
STORAGE_KEYS = {
    "HIGH_PRIORITY_TASKS": "@janaru_high_priority_tasks",
    "MEDIUM_PRIORITY_TASKS": "@janaru_medium_priority_tasks",
    "COMPLETED_TASKS": "@janaru_completed_tasks",
    "RECORDINGS": "@janaru_recordings",
}

# Keys in secure storage
SECURE_STORAGE_KEYS = {
    "CLAUDE_API_KEY": "janaru_claude_api_key",
    "OPENAI_API_KEY": "janaru_openai_api_key",
    "GOOGLE_REFRESH_TOKEN": "janaru_google_refresh_token",
    "USER_AUTH_TOKEN": "janaru_user_auth_token",
}
