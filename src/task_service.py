"""
Task Service - Prioritized task lists
Extracts tasks from transcripts, keeps the high/medium/completed lists in
local storage, and pushes tasks to the calendar
"""

import logging
from typing import Dict, List, Optional

from config.config import STORAGE_KEYS
from src.claude_service import ClaudeService, TaskExtractionError
from src.models import PRIORITIES, PRIORITY_HIGH, Task, TaskResponse
from src.storage import LocalStorage, StorageError
from src.utils import generate_secure_id

logger = logging.getLogger(__name__)

# Fields callers may change through update_task
UPDATABLE_FIELDS = {'title', 'priority', 'date', 'time', 'duration', 'sub_tasks', 'calendar_event_id'}


class TaskNotFoundError(LookupError):
    """Raised when a task id is not in any list"""


class TaskService:
    def __init__(self, storage: LocalStorage, claude_service: ClaudeService, calendar_service=None):
        self.storage = storage
        self.claude_service = claude_service
        self.calendar_service = calendar_service

        self.high_priority_tasks: List[Task] = []
        self.medium_priority_tasks: List[Task] = []
        self.completed_tasks: List[Task] = []

        # Load tasks from storage on initialization
        self.load_tasks()

    # PERSISTENCE

    def load_tasks(self) -> None:
        """Load tasks from local storage"""
        try:
            self.high_priority_tasks = self._load_list(STORAGE_KEYS["HIGH_PRIORITY_TASKS"])
            self.medium_priority_tasks = self._load_list(STORAGE_KEYS["MEDIUM_PRIORITY_TASKS"])
            self.completed_tasks = self._load_list(STORAGE_KEYS["COMPLETED_TASKS"])

            logger.info(f"Tasks loaded from storage: {len(self.high_priority_tasks)} high priority, "
                        f"{len(self.medium_priority_tasks)} medium priority, "
                        f"{len(self.completed_tasks)} completed")
        except StorageError as e:
            logger.error(f"Failed to load tasks from storage: {e}")

    def _load_list(self, key: str) -> List[Task]:
        items = self.storage.get_json(key, default=[])
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            raise StorageError(f"Value for {key} is not a list of tasks")
        return [Task.from_dict(item) for item in items]

    def save_tasks(self) -> None:
        """Save all three task lists to local storage"""
        try:
            self.storage.set_json(STORAGE_KEYS["HIGH_PRIORITY_TASKS"],
                                  [task.to_dict() for task in self.high_priority_tasks])
            self.storage.set_json(STORAGE_KEYS["MEDIUM_PRIORITY_TASKS"],
                                  [task.to_dict() for task in self.medium_priority_tasks])
            self.storage.set_json(STORAGE_KEYS["COMPLETED_TASKS"],
                                  [task.to_dict() for task in self.completed_tasks])
            logger.debug("Tasks saved to storage")
        except StorageError as e:
            logger.error(f"Failed to save tasks to storage: {e}")
            raise

    # EXTRACTION

    def process_transcript(self, transcript: str, recording_id: str) -> TaskResponse:
        """Extract and prioritize tasks from a transcript, replacing earlier tasks for the recording"""
        logger.info(f"Processing transcript for {recording_id} ({len(transcript)} characters)")

        try:
            response = self.claude_service.extract_tasks(transcript, recording_id)
        except (TaskExtractionError, ValueError) as e:
            logger.error(f"Failed to process transcript: {e}")
            raise TaskExtractionError("Failed to extract tasks from transcript") from e

        for task in response.all_tasks:
            if not task.id:
                task.id = generate_secure_id('task')
            task.completed = False
            task.recording_id = recording_id

            for sub_task in task.sub_tasks:
                if not sub_task.id:
                    sub_task.id = generate_secure_id('subtask')
                sub_task.completed = False

        # Remove any existing tasks for this recording to prevent duplicates
        self.high_priority_tasks = [t for t in self.high_priority_tasks if t.recording_id != recording_id]
        self.medium_priority_tasks = [t for t in self.medium_priority_tasks if t.recording_id != recording_id]

        self.high_priority_tasks.extend(response.high_priority_tasks)
        self.medium_priority_tasks.extend(response.medium_priority_tasks)

        self.save_tasks()

        logger.info(f"Transcript processed successfully: {len(response.high_priority_tasks)} high priority, "
                    f"{len(response.medium_priority_tasks)} medium priority tasks")
        return response

    # CRUD

    def add_task(self, task: Task) -> str:
        """Add a single task to the list matching its priority"""
        if not task.id:
            task.id = generate_secure_id('task')

        if task.priority == PRIORITY_HIGH:
            self.high_priority_tasks.append(task)
        else:
            self.medium_priority_tasks.append(task)

        self.save_tasks()
        return task.id

    def get_all_tasks(self) -> Dict[str, List[Task]]:
        return {
            'high_priority_tasks': self.high_priority_tasks,
            'medium_priority_tasks': self.medium_priority_tasks,
            'completed_tasks': self.completed_tasks,
        }

    def get_tasks_by_recording_id(self, recording_id: str) -> Dict[str, List[Task]]:
        return {
            name: [task for task in tasks if task.recording_id == recording_id]
            for name, tasks in self.get_all_tasks().items()
        }

    def get_task_by_id(self, task_id: str) -> Optional[Task]:
        for tasks in (self.high_priority_tasks, self.medium_priority_tasks, self.completed_tasks):
            for task in tasks:
                if task.id == task_id:
                    return task
        return None

    def _require(self, task_id: str) -> Task:
        task = self.get_task_by_id(task_id)
        if not task:
            raise TaskNotFoundError(f"Task not found: {task_id}")
        return task

    def update_task(self, task_id: str, **updates) -> Optional[Task]:
        """Apply field updates to a task; returns None for an unknown id"""
        task = self.get_task_by_id(task_id)
        if not task:
            return None

        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update task fields: {', '.join(sorted(unknown))}")
        if 'priority' in updates and updates['priority'] not in PRIORITIES:
            raise ValueError(f"Invalid priority: {updates['priority']}")

        old_priority = task.priority
        for name, value in updates.items():
            setattr(task, name, value)

        # Keep active tasks in the list that matches their priority
        if task.priority != old_priority and not task.completed:
            self._remove_from_active(task_id)
            if task.priority == PRIORITY_HIGH:
                self.high_priority_tasks.append(task)
            else:
                self.medium_priority_tasks.append(task)

        self.save_tasks()
        return task

    def _remove_from_active(self, task_id: str) -> None:
        self.high_priority_tasks = [t for t in self.high_priority_tasks if t.id != task_id]
        self.medium_priority_tasks = [t for t in self.medium_priority_tasks if t.id != task_id]

    def mark_task_as_completed(self, task_id: str) -> Task:
        """Mark a task as completed and move it to the completed list"""
        try:
            task = self._require(task_id)
        except TaskNotFoundError:
            logger.error(f"Failed to mark task as completed: {task_id} not found")
            raise

        if task.completed:
            logger.info(f"Task {task_id} is already completed")
            return task

        task.completed = True
        self._remove_from_active(task_id)
        self.completed_tasks.append(task)

        self.save_tasks()
        logger.info(f"Task marked as completed: {task_id}")
        return task

    def delete_task(self, task_id: str) -> None:
        """Remove a task from every list"""
        self._remove_from_active(task_id)
        self.completed_tasks = [t for t in self.completed_tasks if t.id != task_id]

        self.save_tasks()
        logger.info(f"Task deleted: {task_id}")

    def clear_all_tasks(self) -> None:
        self.high_priority_tasks = []
        self.medium_priority_tasks = []
        self.completed_tasks = []

        self.save_tasks()
        logger.info("All tasks cleared")

    # CALENDAR

    def add_task_to_calendar(self, task_id: str) -> Optional[str]:
        """Create a calendar event for a task; returns the existing event id if already pushed"""
        task = self._require(task_id)

        if task.calendar_event_id:
            logger.info(f"Task {task_id} already has calendar event {task.calendar_event_id}")
            return task.calendar_event_id

        if not self.calendar_service:
            raise ValueError("No calendar service configured")

        calendar_event_id = self.calendar_service.create_event_for_task(task)

        if calendar_event_id:
            self.update_task_with_calendar_event(task_id, calendar_event_id)
            logger.info(f"Task {task_id} added to calendar as {calendar_event_id}")

        return calendar_event_id

    def update_task_with_calendar_event(self, task_id: str, calendar_event_id: str) -> None:
        task = self._require(task_id)
        task.calendar_event_id = calendar_event_id

        self.save_tasks()
        logger.info(f"Task {task_id} updated with calendar event {calendar_event_id}")
