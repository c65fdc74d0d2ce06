"""
Calendar Service - Google Calendar operations
Handles token refresh, time zone lookup, and turning tasks into calendar events
"""

import time
import random
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests

from config.config import (
    DEFAULT_TIME_ZONE, GOOGLE_ACCESS_TOKEN, GOOGLE_CALENDAR_ID, GOOGLE_CLIENT_ID,
    GOOGLE_CLIENT_SECRET, GOOGLE_REFRESH_TOKEN, IS_PRODUCTION, SECURE_STORAGE_FILE,
    SECURE_STORAGE_KEYS
)
from src.models import DEFAULT_TASK_DURATION, Task
from src.storage import SecureKeyStorage, StorageError

logger = logging.getLogger(__name__)

CALENDAR_API_URL = "https://www.googleapis.com/calendar/v3"
TOKEN_URL = "https://oauth2.googleapis.com/token"
REVOKE_URL = "https://oauth2.googleapis.com/revoke"

DEFAULT_EVENT_TIME = "18:00"


class CalendarError(Exception):
    """Raised when a calendar operation fails"""


class GoogleCalendarService:
    def __init__(self, secure_storage: Optional[SecureKeyStorage] = None,
                 access_token: Optional[str] = None, refresh_token: Optional[str] = None,
                 calendar_id: Optional[str] = None, mock: Optional[bool] = None,
                 session: Optional[requests.Session] = None):
        self.secure_storage = secure_storage or SecureKeyStorage(SECURE_STORAGE_FILE)
        self.session = session or requests.Session()
        self.calendar_id = calendar_id or GOOGLE_CALENDAR_ID
        self.mock = (not IS_PRODUCTION) if mock is None else mock

        self.client_id = GOOGLE_CLIENT_ID
        self.client_secret = GOOGLE_CLIENT_SECRET
        self.access_token = access_token or GOOGLE_ACCESS_TOKEN
        self._refresh_token = refresh_token or GOOGLE_REFRESH_TOKEN
        self.time_zone = DEFAULT_TIME_ZONE

        # Performance tracking
        self.api_calls = 0

        # Rate limiting
        self.timeout = 30
        self.last_request_time = 0
        self.min_request_interval = 0.1  # 100ms between requests

    # AUTH

    @property
    def refresh_token(self) -> Optional[str]:
        return self._refresh_token or self.secure_storage.get_key(SECURE_STORAGE_KEYS["GOOGLE_REFRESH_TOKEN"])

    def sign_in(self) -> bool:
        """Get an access token and the user's time zone"""
        try:
            if self._can_refresh():
                self._refresh_access_token(self.refresh_token)
            elif not self.access_token:
                logger.error("Google Sign-In failed: no refresh token or access token configured")
                return False

            if self._refresh_token:
                self.secure_storage.store_key(SECURE_STORAGE_KEYS["GOOGLE_REFRESH_TOKEN"], self._refresh_token)
                logger.info("Google refresh token stored")

            self._fetch_user_time_zone()
            logger.info("Google Sign-In successful")
            return True

        except (requests.RequestException, StorageError, KeyError) as e:
            logger.error(f"Google Sign-In failed: {e}")
            return False

    def _can_refresh(self) -> bool:
        return bool(self.refresh_token and self.client_id and self.client_secret)

    def _refresh_access_token(self, refresh_token: str) -> None:
        response = self.session.post(TOKEN_URL, data={
            'client_id': self.client_id,
            'client_secret': self.client_secret,
            'refresh_token': refresh_token,
            'grant_type': 'refresh_token',
        }, timeout=self.timeout)
        response.raise_for_status()

        tokens = response.json()
        self.access_token = tokens['access_token']
        # Google only sends a refresh token back when it rotates it
        self._refresh_token = tokens.get('refresh_token', refresh_token)

    def sign_out(self) -> bool:
        """Revoke the Google token and forget local credentials"""
        token = self.refresh_token or self.access_token
        revoked = True

        if token:
            try:
                response = self.session.post(REVOKE_URL, params={'token': token}, timeout=self.timeout)
                response.raise_for_status()
            except requests.RequestException as e:
                logger.warning(f"Failed to revoke Google token: {e}")
                revoked = False

        self.access_token = None
        self._refresh_token = None
        self.secure_storage.delete_key(SECURE_STORAGE_KEYS["GOOGLE_REFRESH_TOKEN"])

        logger.info("Google Sign-Out complete")
        return revoked

    def is_signed_in(self) -> bool:
        return bool(self.access_token or self.refresh_token)

    def _ensure_signed_in(self) -> None:
        if not self.access_token:
            self.sign_in()

        if not self.access_token:
            raise CalendarError("Not signed in to Google")

    def get_user_email(self) -> Optional[str]:
        """The primary calendar id is the account's email address"""
        try:
            self._ensure_signed_in()
            calendar = self._make_api_call("GET", "/calendars/primary")
            return calendar.get('id')
        except (CalendarError, requests.RequestException) as e:
            logger.error(f"Failed to get Google user email: {e}")
            return None

    def _fetch_user_time_zone(self) -> None:
        try:
            settings = self._make_api_call("GET", "/users/me/settings/timezone")
            if settings.get('value'):
                self.time_zone = settings['value']
                logger.info(f"User time zone: {self.time_zone}")
        except requests.RequestException as e:
            logger.warning(f"Failed to get user time zone, using default {self.time_zone}: {e}")

    # API CALLS

    def _rate_limit(self):
        """Keep a minimum interval between requests"""
        current_time = time.time()
        time_since_last = current_time - self.last_request_time
        if time_since_last < self.min_request_interval:
            time.sleep(self.min_request_interval - time_since_last)
        self.last_request_time = time.time()

    def _make_api_call(self, method: str, path: str, retry_auth: bool = True, **kwargs) -> Dict[str, Any]:
        """Call the Calendar API, refreshing the access token once on 401"""
        self._rate_limit()

        headers = {'Authorization': f'Bearer {self.access_token}'}
        response = self.session.request(method, f"{CALENDAR_API_URL}{path}", headers=headers,
                                        timeout=self.timeout, **kwargs)
        self.api_calls += 1

        if response.status_code == 401 and retry_auth and self._can_refresh():
            logger.info("Access token rejected, refreshing")
            self._refresh_access_token(self.refresh_token)
            return self._make_api_call(method, path, retry_auth=False, **kwargs)

        response.raise_for_status()
        return response.json() if response.content else {}

    def get_performance_stats(self) -> Dict[str, Any]:
        return {
            'api_calls_made': self.api_calls,
            'time_zone': self.time_zone,
        }

    # EVENTS

    def build_event_for_task(self, task: Task) -> Dict[str, Any]:
        """Build the Calendar API event body for a task"""
        if not task.date:
            raise ValueError("Task must have a date")

        time_str = task.time or DEFAULT_EVENT_TIME
        try:
            start = datetime.strptime(f"{task.date} {time_str}", "%Y-%m-%d %H:%M")
        except ValueError as e:
            raise ValueError(f"Invalid task date/time: {task.date} {time_str}") from e

        duration = task.duration or DEFAULT_TASK_DURATION
        end = start + timedelta(minutes=duration)

        description = f"Task Priority: {task.priority}\n"
        if task.sub_tasks:
            description += "\nSubtasks:\n" + "\n".join(f"- {sub_task.title}" for sub_task in task.sub_tasks)

        # Local wall-clock times; Google applies the timeZone field
        return {
            'summary': task.title,
            'description': description,
            'start': {
                'dateTime': start.strftime("%Y-%m-%dT%H:%M:%S"),
                'timeZone': self.time_zone,
            },
            'end': {
                'dateTime': end.strftime("%Y-%m-%dT%H:%M:%S"),
                'timeZone': self.time_zone,
            },
        }

    def create_event_for_task(self, task: Task) -> Optional[str]:
        """Create a calendar event for a task and return its event id"""
        event = self.build_event_for_task(task)

        try:
            self._ensure_signed_in()
            created = self._make_api_call("POST", f"/calendars/{self.calendar_id}/events", json=event)
        except (CalendarError, requests.RequestException) as e:
            logger.error(f"Failed to create calendar event: {e}")

            # Mock event ID for testing
            if self.mock:
                mock_event_id = f"evt_{int(time.time() * 1000)}_{random.randint(0, 9999)}"
                logger.info(f"Using mock calendar event ID: {mock_event_id}")
                return mock_event_id

            raise CalendarError("Failed to add task to calendar") from e

        event_id = created.get('id')
        if event_id:
            logger.info(f"Calendar event created with ID: {event_id}")
        return event_id

    def get_upcoming_events(self, max_results: int = 10) -> List[Dict[str, Any]]:
        """Upcoming single events on the calendar, soonest first"""
        try:
            self._ensure_signed_in()
            now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
            response = self._make_api_call("GET", f"/calendars/{self.calendar_id}/events", params={
                'timeMin': now,
                'maxResults': max_results,
                'singleEvents': 'true',
                'orderBy': 'startTime',
            })
            return response.get('items', [])
        except (CalendarError, requests.RequestException) as e:
            logger.error(f"Failed to get upcoming events: {e}")
            return []
