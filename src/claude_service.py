"""
Claude Service - Task extraction from voice memo transcripts
Sends transcripts to Claude and parses the JSON task lists it returns,
with a keyword-based mock for development without API calls
"""

import json
import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from anthropic import Anthropic, APIError

from config.config import (
    CLAUDE_API_KEY, CLAUDE_API_MODEL, CLAUDE_MAX_TOKENS, MOCK_ENABLED,
    SECURE_STORAGE_FILE, SECURE_STORAGE_KEYS
)
from config.prompts import get_task_extraction_prompt
from src.models import PRIORITY_HIGH, PRIORITY_MEDIUM, SubTask, Task, TaskResponse
from src.storage import SecureKeyStorage, StorageError
from src.utils import format_date, generate_secure_id

logger = logging.getLogger(__name__)


class TaskExtractionError(Exception):
    """Raised when tasks cannot be extracted from a transcript"""


class ClaudeService:
    def __init__(self, api_key: Optional[str] = None, secure_storage: Optional[SecureKeyStorage] = None,
                 model: Optional[str] = None, mock: Optional[bool] = None):
        self.secure_storage = secure_storage or SecureKeyStorage(SECURE_STORAGE_FILE)
        self.model = model or CLAUDE_API_MODEL
        self.mock = MOCK_ENABLED if mock is None else mock

        # Explicit key, then a key saved from the CLI, then the environment
        api_key = (api_key or
                   self.secure_storage.get_key(SECURE_STORAGE_KEYS["CLAUDE_API_KEY"]) or
                   CLAUDE_API_KEY)
        self.client = Anthropic(api_key=api_key) if api_key else None

        if not self.client and not self.mock:
            raise ValueError("CLAUDE_API_KEY not found in configuration")

    # API KEY MANAGEMENT

    def set_api_key(self, api_key: str) -> None:
        """Save the Claude API key to secure storage and start using it"""
        if not api_key or not api_key.strip():
            raise ValueError("API key must not be empty")

        try:
            self.secure_storage.store_key(SECURE_STORAGE_KEYS["CLAUDE_API_KEY"], api_key.strip())
        except StorageError as e:
            logger.error(f"Failed to save Claude API key: {e}")
            raise ValueError("Failed to save API key") from e

        self.client = Anthropic(api_key=api_key.strip())
        logger.info("Claude API key saved")

    def validate_api_key_exists(self) -> bool:
        """Check that an API key is stored, without returning it"""
        api_key = self.secure_storage.get_key(SECURE_STORAGE_KEYS["CLAUDE_API_KEY"])
        return api_key is not None and len(api_key) > 0

    # TASK EXTRACTION

    def extract_tasks(self, transcript: str, recording_id: str) -> TaskResponse:
        """Extract tasks with the keyword mock in mock mode, otherwise with Claude"""
        if self.mock:
            return self.mock_process_transcript(transcript, recording_id)
        return self.process_transcript(transcript, recording_id)

    def process_transcript(self, transcript: str, recording_id: str,
                           today: Optional[date] = None) -> TaskResponse:
        """Send the transcript to Claude and parse the prioritized task lists"""
        if not self.client:
            raise ValueError("CLAUDE_API_KEY not found in configuration")

        today = today or date.today()
        prompt = get_task_extraction_prompt(transcript=transcript, today=format_date(today))

        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=CLAUDE_MAX_TOKENS,
                temperature=0.2,  # Low temperature for consistent extraction
                messages=[
                    {
                        "role": "user",
                        "content": prompt
                    }
                ]
            )
        except APIError as e:
            logger.error(f"Claude API error while extracting tasks: {e}")
            raise TaskExtractionError(f"Claude API error: {e}") from e

        response_text = response.content[0].text
        logger.info(f"Task extraction response: {len(response_text)} characters")

        return self._parse_task_response(response_text, recording_id)

    def _parse_task_response(self, response_text: str, recording_id: str) -> TaskResponse:
        """Parse Claude's JSON reply into a TaskResponse"""
        # Claude may wrap the JSON in prose or code fences; only the first object counts
        json_start = response_text.find('{')

        if json_start == -1:
            logger.error(f"No JSON found in Claude response: {response_text[:200]}")
            raise TaskExtractionError("No JSON found in Claude response")

        try:
            data, _ = json.JSONDecoder().raw_decode(response_text, json_start)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse Claude JSON response: {e}")
            raise TaskExtractionError(f"JSON parsing failed: {e}") from e

        if not isinstance(data, dict):
            raise TaskExtractionError("Claude response JSON is not an object")

        return TaskResponse(
            high_priority_tasks=self._build_tasks(
                self._get_list(data, 'highPriorityTasks', 'high_priority_tasks'), PRIORITY_HIGH, recording_id),
            medium_priority_tasks=self._build_tasks(
                self._get_list(data, 'mediumPriorityTasks', 'medium_priority_tasks'), PRIORITY_MEDIUM, recording_id),
        )

    def _get_list(self, data: Dict[str, Any], camel: str, snake: str) -> List[Any]:
        items = data.get(camel, data.get(snake)) or []
        if not isinstance(items, list):
            raise TaskExtractionError(f"Expected a list for {camel}")
        return items

    def _build_tasks(self, items: List[Any], priority: str, recording_id: str) -> List[Task]:
        tasks = []
        for item in items:
            if not isinstance(item, dict):
                logger.warning(f"Skipping malformed task entry: {item!r}")
                continue

            task = Task.from_dict(item, priority=priority)
            if not task.title:
                logger.warning("Skipping task without a title")
                continue

            task.id = task.id or generate_secure_id('task')
            task.recording_id = recording_id
            task.completed = False
            for sub_task in task.sub_tasks:
                sub_task.id = sub_task.id or generate_secure_id('subtask')
                sub_task.completed = False
            tasks.append(task)

        return tasks

    # MOCK EXTRACTION

    def mock_process_transcript(self, transcript: str, recording_id: str,
                                today: Optional[date] = None) -> TaskResponse:
        """Keyword-based task extraction for testing without API calls"""
        today = today or date.today()
        next_week = today + timedelta(days=7)
        text = transcript.lower()

        high_priority_tasks = []
        medium_priority_tasks = []

        def make_task(title: str, priority: str, due: date, time: Optional[str], duration: int,
                      sub_task_titles: Optional[List[str]] = None) -> Task:
            return Task(
                id=generate_secure_id('task'),
                title=title,
                priority=priority,
                date=format_date(due),
                time=time,
                duration=duration,
                completed=False,
                recording_id=recording_id,
                sub_tasks=[SubTask(id=generate_secure_id('subtask'), title=sub_title)
                           for sub_title in (sub_task_titles or [])],
            )

        # Tax related tasks
        if 'tax' in text:
            high_priority_tasks.append(
                make_task('File your taxes', PRIORITY_HIGH, today, '18:00', 120))

        # Vet/doctor related tasks
        if 'dog' in text and ('vet' in text or 'doctor' in text):
            high_priority_tasks.append(
                make_task('Take your dog to the vet', PRIORITY_HIGH, today + timedelta(days=2), '18:00', 60))

        # Driver's license
        if 'driver' in text and 'license' in text:
            high_priority_tasks.append(
                make_task("Help with driver's license", PRIORITY_HIGH, today + timedelta(days=5), '10:00', 90))

        # Yard waste
        if 'yard' in text or 'waste' in text or 'dispose' in text:
            medium_priority_tasks.append(
                make_task('Dispose of yard waste', PRIORITY_MEDIUM, next_week, None, 60,
                          ['Research disposal options', 'Schedule pickup or dropoff']))

        # Vacation planning
        if 'vacation' in text or 'burnt out' in text or 'burnout' in text:
            medium_priority_tasks.append(
                make_task('Plan vacation for burnout recovery', PRIORITY_MEDIUM, next_week + timedelta(days=7),
                          None, 120, ['Research destinations', 'Check available time off']))

        # Add a default task if nothing was extracted
        if not high_priority_tasks and not medium_priority_tasks:
            high_priority_tasks.append(
                make_task('Review your priorities', PRIORITY_HIGH, today, '18:00', 30))

        logger.info(f"Mock extraction: {len(high_priority_tasks)} high, {len(medium_priority_tasks)} medium")

        return TaskResponse(
            high_priority_tasks=high_priority_tasks,
            medium_priority_tasks=medium_priority_tasks
        )
