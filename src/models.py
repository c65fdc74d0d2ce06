"""
Models - Task, subtask and recording records
Stored and exchanged as JSON using camelCase keys
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

PRIORITY_HIGH = 'high'
PRIORITY_MEDIUM = 'medium'
PRIORITIES = (PRIORITY_HIGH, PRIORITY_MEDIUM)

DEFAULT_TASK_DURATION = 60  # minutes


def _pick(data: Dict[str, Any], camel: str, snake: str, default: Any = None) -> Any:
    """Read a field that may be spelled in camelCase or snake_case"""
    if camel in data:
        return data[camel]
    return data.get(snake, default)


def _parse_duration(value: Any) -> int:
    try:
        duration = int(value)
    except (TypeError, ValueError):
        return DEFAULT_TASK_DURATION
    return duration if duration > 0 else DEFAULT_TASK_DURATION


@dataclass
class SubTask:
    id: str
    title: str
    completed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'title': self.title, 'completed': self.completed}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SubTask':
        return cls(
            id=data.get('id') or '',
            title=str(data.get('title') or '').strip(),
            completed=bool(data.get('completed', False)),
        )


@dataclass
class Task:
    id: str
    title: str
    priority: str
    date: Optional[str] = None
    time: Optional[str] = None
    duration: int = DEFAULT_TASK_DURATION
    completed: bool = False
    recording_id: str = ''
    sub_tasks: List[SubTask] = field(default_factory=list)
    calendar_event_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'title': self.title,
            'priority': self.priority,
            'date': self.date,
            'time': self.time,
            'duration': self.duration,
            'completed': self.completed,
            'recordingId': self.recording_id,
        }
        if self.sub_tasks:
            data['subTasks'] = [sub_task.to_dict() for sub_task in self.sub_tasks]
        if self.calendar_event_id:
            data['calendarEventId'] = self.calendar_event_id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], priority: Optional[str] = None) -> 'Task':
        """
        Build a task from stored JSON or a language model response

        Args:
            data: Task fields, camelCase or snake_case
            priority: Overrides the priority in data (used when the list decides it)
        """
        task_priority = priority or str(data.get('priority') or PRIORITY_MEDIUM).lower()
        if task_priority not in PRIORITIES:
            task_priority = PRIORITY_MEDIUM

        raw_sub_tasks = _pick(data, 'subTasks', 'sub_tasks') or []

        return cls(
            id=data.get('id') or '',
            title=str(data.get('title') or '').strip(),
            priority=task_priority,
            date=data.get('date') or None,
            time=data.get('time') or None,
            duration=_parse_duration(data.get('duration')),
            completed=bool(data.get('completed', False)),
            recording_id=_pick(data, 'recordingId', 'recording_id') or '',
            sub_tasks=[SubTask.from_dict(s) for s in raw_sub_tasks if isinstance(s, dict)],
            calendar_event_id=_pick(data, 'calendarEventId', 'calendar_event_id'),
        )


@dataclass
class Recording:
    id: str
    title: str
    date: str
    audio_uri: str
    transcript: Optional[str] = None
    duration: float = 0
    processed: bool = False
    file_size: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'title': self.title,
            'date': self.date,
            'audioUri': self.audio_uri,
            'transcript': self.transcript,
            'duration': self.duration,
            'processed': self.processed,
        }
        if self.file_size is not None:
            data['fileSize'] = self.file_size
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Recording':
        return cls(
            id=data.get('id') or '',
            title=data.get('title', ''),
            date=data.get('date', ''),
            audio_uri=_pick(data, 'audioUri', 'audio_uri', ''),
            transcript=data.get('transcript'),
            duration=data.get('duration') or 0,
            processed=bool(data.get('processed', False)),
            file_size=_pick(data, 'fileSize', 'file_size'),
        )


@dataclass
class TaskResponse:
    high_priority_tasks: List[Task] = field(default_factory=list)
    medium_priority_tasks: List[Task] = field(default_factory=list)

    @property
    def all_tasks(self) -> List[Task]:
        return self.high_priority_tasks + self.medium_priority_tasks

    def to_dict(self) -> Dict[str, Any]:
        return {
            'highPriorityTasks': [task.to_dict() for task in self.high_priority_tasks],
            'mediumPriorityTasks': [task.to_dict() for task in self.medium_priority_tasks],
        }
