"""
Utils - Pure utility functions
Contains helper functions for ids, dates, formatting, and validation
"""

import os
import re
import json
import time
import secrets
import string
from datetime import date, datetime
from typing import Dict, Optional, Any
from pathlib import Path

from config.config import SUPPORTED_FORMATS

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_secure_id(prefix: str = 'id') -> str:
    """Generate a unique id like task_1711017000000_k3j9x0q2m1a7"""
    timestamp = int(time.time() * 1000)
    random_part = ''.join(secrets.choice(_ID_ALPHABET) for _ in range(12))
    return f"{prefix}_{timestamp}_{random_part}"


def format_date(value: date) -> str:
    """Format a date as YYYY-MM-DD"""
    return value.strftime("%Y-%m-%d")


def validate_audio_file(file_path: str) -> Dict[str, Any]:
    """Validate if file is a supported audio file"""
    if not os.path.exists(file_path):
        return {"valid": False, "reason": "file_not_found"}

    file_size = os.path.getsize(file_path)
    file_extension = Path(file_path).suffix.lower()

    if file_size == 0:
        return {"valid": False, "reason": "empty_file"}

    if file_extension not in SUPPORTED_FORMATS:
        return {"valid": False, "reason": "unsupported_format"}

    return {
        "valid": True,
        "file_size": file_size,
        "file_extension": file_extension,
        "filename": os.path.basename(file_path)
    }


def clean_filename(filename: str) -> str:
    """Clean filename for use as title"""
    # Remove extension
    base_name = Path(filename).stem

    # Replace underscores and hyphens with spaces
    cleaned = base_name.replace('_', ' ').replace('-', ' ')

    # Remove extra spaces
    cleaned = re.sub(r'\s+', ' ', cleaned).strip()

    return cleaned


def format_task_duration(minutes: int) -> str:
    """Format a task duration given in minutes, e.g. 90 -> '1h 30m'"""
    if not minutes or minutes <= 0:
        return "0m"

    hours, remaining = divmod(int(minutes), 60)
    if hours and remaining:
        return f"{hours}h {remaining}m"
    elif hours:
        return f"{hours}h"
    return f"{remaining}m"


def format_clock(seconds: float) -> str:
    """Format seconds as MM:SS for recording lengths"""
    total = int(seconds)
    return f"{total // 60:02d}:{total % 60:02d}"


def parse_iso_timestamp(timestamp_string: str) -> Optional[datetime]:
    """Parse ISO timestamp string to datetime object"""
    if not timestamp_string:
        return None

    try:
        # Handle different ISO formats
        if timestamp_string.endswith('Z'):
            timestamp_string = timestamp_string.replace('Z', '+00:00')

        return datetime.fromisoformat(timestamp_string)
    except ValueError:
        return None


def sanitize_json_for_logging(data: Any, max_length: int = 500) -> str:
    """Safely convert data to JSON string for logging"""
    try:
        json_str = json.dumps(data, default=str, ensure_ascii=False)
        if len(json_str) > max_length:
            return json_str[:max_length] + "..."
        return json_str
    except (TypeError, ValueError):
        return str(data)[:max_length]
