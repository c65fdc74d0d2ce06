#!/usr/bin/env python3
"""
Janaru Voice Tasks

Turns voice memos into prioritized tasks:
1. Records a memo from the microphone or reads audio files from a folder
2. Transcribes them (OpenAI speech-to-text with Google fallback)
3. Extracts high/medium priority tasks with Claude (keyword mock in development)
4. Pushes tasks to Google Calendar on request

Usage:
    python main.py process [--folder FOLDER | --file FILE] [--dry-run]
    python main.py record [--seconds N]
    python main.py tasks [--recording ID]
    python main.py calendar push TASK_ID
"""

import sys
import time
import argparse
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from config.config import (
    AUDIO_FOLDER, DATA_DIR, ENVIRONMENT, LOG_FILE, LOG_LEVEL, MOCK_ENABLED,
    SECURE_STORAGE_FILE, SECURE_STORAGE_KEYS, STORAGE_FILE, SUPPORTED_FORMATS
)
from src.audio_service import AudioService
from src.calendar_service import CalendarError, GoogleCalendarService
from src.claude_service import ClaudeService, TaskExtractionError
from src.models import Task, TaskResponse
from src.recording_service import RecordingNotFoundError, RecordingService
from src.storage import LocalStorage, SecureKeyStorage, StorageError
from src.task_service import TaskNotFoundError, TaskService
from src.utils import (
    format_clock, format_task_duration, generate_secure_id, sanitize_json_for_logging,
    validate_audio_file
)

logger = logging.getLogger(__name__)


def setup_logging(level: str = LOG_LEVEL, log_file: Optional[str] = LOG_FILE) -> None:
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.insert(0, logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


class VoiceTaskProcessor:
    def __init__(self, mock: bool = MOCK_ENABLED, dry_run: bool = False,
                 storage: Optional[LocalStorage] = None, secure_storage: Optional[SecureKeyStorage] = None,
                 audio_service: Optional[AudioService] = None, claude_service: Optional[ClaudeService] = None,
                 calendar_service: Optional[GoogleCalendarService] = None):
        self.mock = mock
        self.dry_run = dry_run

        self.storage = storage or LocalStorage(STORAGE_FILE)
        self.secure_storage = secure_storage or SecureKeyStorage(SECURE_STORAGE_FILE)

        openai_key = self.secure_storage.get_key(SECURE_STORAGE_KEYS["OPENAI_API_KEY"])
        self.audio_service = audio_service or AudioService(openai_api_key=openai_key, mock=mock)
        self.claude_service = claude_service or ClaudeService(secure_storage=self.secure_storage, mock=mock)
        self.calendar_service = calendar_service or GoogleCalendarService(secure_storage=self.secure_storage)

        self.recording_service = RecordingService(self.storage, audio_service=self.audio_service)
        self.task_service = TaskService(self.storage, self.claude_service, self.calendar_service)

        # Performance tracking
        self.session_stats = {
            'start_time': datetime.now(),
            'files_processed': 0,
            'files_successful': 0,
            'files_failed': 0,
            'files_skipped': 0,
            'tasks_extracted': 0,
            'total_processing_time': 0,
        }

    def find_audio_files(self, folder_path: str) -> List[Path]:
        """Find all supported audio files in the root of a folder"""
        folder = Path(folder_path)
        if not folder.exists():
            logger.error(f"Folder does not exist: {folder_path}")
            return []

        audio_files = [f for f in folder.iterdir() if f.is_file() and f.suffix.lower() in SUPPORTED_FORMATS]

        logger.info(f"Found {len(audio_files)} audio files in {folder_path}")
        return sorted(audio_files)

    def extract_tasks_for_recording(self, recording_id: str) -> TaskResponse:
        """Run task extraction on a stored transcript and mark the recording processed"""
        recording = self.recording_service.get_recording_by_id(recording_id)
        if not recording:
            raise RecordingNotFoundError(f"Recording not found: {recording_id}")
        if not recording.transcript:
            raise TaskExtractionError(f"Recording {recording_id} has no transcript")

        response = self.task_service.process_transcript(recording.transcript, recording_id)
        self.recording_service.mark_recording_as_processed(recording_id)
        return response

    def process_file(self, file_path: Path) -> bool:
        """
        Transcribe a single audio file and extract its tasks
        """
        file_start_time = time.time()
        logger.info(f"Processing: {file_path.name}")

        validation = validate_audio_file(str(file_path))
        if not validation['valid']:
            logger.warning(f"Skipping {file_path.name}: {validation['reason']}")
            self._record_result(False, file_start_time)
            return False

        existing = self.recording_service.get_recording_by_audio_uri(str(file_path))
        if existing and existing.processed:
            logger.info(f"File {file_path.name} already processed as {existing.id} - skipping")
            self.session_stats['files_skipped'] += 1
            return True

        transcript = existing.transcript if existing else None
        if not transcript:
            transcript = self.audio_service.transcribe_audio(str(file_path))
            if not transcript:
                logger.warning(f"Failed to transcribe {file_path.name}")
                self._record_result(False, file_start_time)
                return False

        logger.info(f"Transcription length: {len(transcript)} characters")

        if self.dry_run:
            try:
                response = self.claude_service.extract_tasks(transcript, 'dry-run')
            except (TaskExtractionError, ValueError) as e:
                logger.error(f"Error extracting tasks from {file_path.name}: {e}")
                self._record_result(False, file_start_time)
                return False
            logger.info(f"DRY RUN - would store {len(response.all_tasks)} tasks for {file_path.name}:")
            for task in response.all_tasks:
                logger.info(f"  [{task.priority}] {task.title} ({task.date or 'no date'})")
            self._record_result(True, file_start_time)
            return True

        recording = existing or self.recording_service.create_recording(str(file_path))
        self.recording_service.update_recording_transcript(recording.id, transcript)

        try:
            response = self.extract_tasks_for_recording(recording.id)
        except TaskExtractionError as e:
            logger.error(f"Error extracting tasks from {file_path.name}: {e}")
            self._record_result(False, file_start_time)
            return False

        self.session_stats['tasks_extracted'] += len(response.all_tasks)
        self._record_result(True, file_start_time)
        logger.info(f"Successfully processed {file_path.name} in {time.time() - file_start_time:.1f}s")
        return True

    def _record_result(self, success: bool, start_time: float) -> None:
        self.session_stats['files_processed'] += 1
        self.session_stats['total_processing_time'] += time.time() - start_time
        if success:
            self.session_stats['files_successful'] += 1
        else:
            self.session_stats['files_failed'] += 1

    def process_folder(self, folder_path: str, max_files: Optional[int] = None) -> None:
        audio_files = self.find_audio_files(folder_path)
        if max_files:
            audio_files = audio_files[:max_files]

        if not audio_files:
            logger.info("No audio files found to process")
            return

        for i, file_path in enumerate(audio_files, 1):
            logger.info(f"Processing {i}/{len(audio_files)}: {file_path.name}")
            self.process_file(file_path)

        logger.info(f"=== PROCESSING COMPLETE ===")
        self.print_performance_summary()

    def record_and_process(self, max_seconds: int = 120) -> Optional[str]:
        """Record a memo from the microphone, then transcribe and extract tasks"""
        output_path = Path(AUDIO_FOLDER) / "recordings" / f"{generate_secure_id('memo')}.wav"

        if self.mock:
            logger.info("Mock mode - skipping microphone capture")
            recording = self.recording_service.create_recording(str(output_path), duration=0)
        else:
            result = self.audio_service.record_memo(str(output_path), max_seconds=max_seconds)
            if not result:
                return None
            path, duration = result
            recording = self.recording_service.create_recording(path, duration=duration)

        transcript = self.audio_service.transcribe_audio(str(output_path))
        if not transcript:
            logger.error("Recording saved but transcription failed")
            return recording.id

        self.recording_service.update_recording_transcript(recording.id, transcript)
        self.extract_tasks_for_recording(recording.id)
        return recording.id

    def generate_performance_report(self) -> Dict[str, Any]:
        session_duration = (datetime.now() - self.session_stats['start_time']).total_seconds()
        processed = self.session_stats['files_processed']

        report = {
            'session_summary': {
                'duration_seconds': round(session_duration, 2),
                'files_processed': processed,
                'files_successful': self.session_stats['files_successful'],
                'files_failed': self.session_stats['files_failed'],
                'files_skipped': self.session_stats['files_skipped'],
                'tasks_extracted': self.session_stats['tasks_extracted'],
                'success_rate_percent': round(
                    (self.session_stats['files_successful'] / max(1, processed)) * 100, 1
                ),
                'avg_processing_time_seconds': round(
                    self.session_stats['total_processing_time'] / max(1, processed), 2
                ),
            },
            'calendar_api': self.calendar_service.get_performance_stats(),
        }
        return report

    def print_performance_summary(self):
        session = self.generate_performance_report()['session_summary']

        print("\n" + "=" * 60)
        print("PROCESSING SUMMARY")
        print("=" * 60)
        print(f"Session Duration: {session['duration_seconds']}s")
        print(f"Files Processed: {session['files_processed']}")
        print(f"Successful: {session['files_successful']}")
        print(f"Failed: {session['files_failed']}")
        print(f"Skipped: {session['files_skipped']}")
        print(f"Tasks Extracted: {session['tasks_extracted']}")
        print(f"Success Rate: {session['success_rate_percent']}%")
        print(f"Avg Processing Time: {session['avg_processing_time_seconds']}s per file")
        print("=" * 60)


# OUTPUT HELPERS

def print_task(task: Task) -> None:
    when = task.date or "unscheduled"
    if task.time:
        when += f" {task.time}"
    status = "x" if task.completed else " "
    calendar = " [calendar]" if task.calendar_event_id else ""

    print(f"  [{status}] {task.title} - {when}, {format_task_duration(task.duration)}{calendar}")
    print(f"      id: {task.id}")
    for sub_task in task.sub_tasks:
        print(f"      - {sub_task.title}")


def print_task_lists(task_lists: Dict[str, List[Task]]) -> None:
    sections = [
        ('HIGH PRIORITY', task_lists['high_priority_tasks']),
        ('MEDIUM PRIORITY', task_lists['medium_priority_tasks']),
        ('COMPLETED', task_lists['completed_tasks']),
    ]
    for heading, tasks in sections:
        print(f"\n{heading} ({len(tasks)})")
        if not tasks:
            print("  (none)")
        for task in tasks:
            print_task(task)


# COMMANDS

def cmd_process(processor: VoiceTaskProcessor, args) -> int:
    if args.file:
        file_path = Path(args.file)
        if not file_path.exists():
            logger.error(f"File does not exist: {args.file}")
            return 1
        if file_path.suffix.lower() not in SUPPORTED_FORMATS:
            logger.error(f"Unsupported file format: {file_path.suffix}")
            return 1

        success = processor.process_file(file_path)
        processor.print_performance_summary()
        return 0 if success else 1

    if not Path(args.folder).exists():
        logger.error(f"Folder does not exist: {args.folder}")
        return 1

    processor.process_folder(args.folder, max_files=args.max_files)
    return 0


def cmd_record(processor: VoiceTaskProcessor, args) -> int:
    recording_id = processor.record_and_process(max_seconds=args.seconds)
    if not recording_id:
        print("Nothing recorded.")
        return 1

    print(f"Recording {recording_id}")
    print_task_lists(processor.task_service.get_tasks_by_recording_id(recording_id))
    return 0


def cmd_recordings(processor: VoiceTaskProcessor, args) -> int:
    recordings = processor.recording_service.get_recordings()
    if not recordings:
        print("No recordings yet. Try: python main.py seed-demo")
        return 0

    for recording in recordings:
        state = "processed" if recording.processed else ("transcribed" if recording.transcript else "new")
        print(f"{recording.id}  {recording.date[:16]}  {format_clock(recording.duration)}  "
              f"{state:<11}  {recording.title}")
    return 0


def cmd_transcript(processor: VoiceTaskProcessor, args) -> int:
    if args.set is not None:
        processor.recording_service.update_recording_transcript(args.recording_id, args.set)
        print("Transcript updated.")
        return 0

    recording = processor.recording_service.get_recording_by_id(args.recording_id)
    if not recording:
        raise RecordingNotFoundError(f"Recording not found: {args.recording_id}")

    print(recording.transcript or "(no transcript yet)")
    return 0


def cmd_extract(processor: VoiceTaskProcessor, args) -> int:
    response = processor.extract_tasks_for_recording(args.recording_id)
    print(f"Extracted {len(response.all_tasks)} tasks")
    print_task_lists(processor.task_service.get_tasks_by_recording_id(args.recording_id))
    return 0


def cmd_tasks(processor: VoiceTaskProcessor, args) -> int:
    if args.recording:
        print_task_lists(processor.task_service.get_tasks_by_recording_id(args.recording))
    else:
        print_task_lists(processor.task_service.get_all_tasks())
    return 0


def cmd_complete(processor: VoiceTaskProcessor, args) -> int:
    task = processor.task_service.mark_task_as_completed(args.task_id)
    print(f"Completed: {task.title}")
    return 0


def cmd_delete(processor: VoiceTaskProcessor, args) -> int:
    processor.task_service.delete_task(args.task_id)
    print(f"Deleted {args.task_id}")
    return 0


def cmd_clear_tasks(processor: VoiceTaskProcessor, args) -> int:
    processor.task_service.clear_all_tasks()
    print("All tasks cleared.")
    return 0


def cmd_calendar(processor: VoiceTaskProcessor, args) -> int:
    calendar = processor.calendar_service

    if args.calendar_command == 'push':
        event_id = processor.task_service.add_task_to_calendar(args.task_id)
        if not event_id:
            print("Calendar did not return an event id.")
            return 1
        print(f"Added to calendar: {event_id}")
    elif args.calendar_command == 'connect':
        if not calendar.sign_in():
            print("Could not connect to Google. Check GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and GOOGLE_REFRESH_TOKEN.")
            return 1
        print(f"Connected as {calendar.get_user_email() or 'unknown account'} ({calendar.time_zone})")
    elif args.calendar_command == 'disconnect':
        if not calendar.sign_out():
            print("Local credentials removed, but Google did not confirm the token revocation.")
            return 1
        print("Disconnected from Google.")
    elif args.calendar_command == 'status':
        if calendar.is_signed_in():
            print(f"Connected: {calendar.get_user_email() or 'unknown account'}")
        else:
            print("Not connected.")
    elif args.calendar_command == 'upcoming':
        events = calendar.get_upcoming_events(max_results=args.max)
        if not events:
            print("No upcoming events.")
        for event in events:
            start = event.get('start', {})
            print(f"{start.get('dateTime', start.get('date', '?'))}  {event.get('summary', '(no title)')}")
    return 0


def cmd_set_key(processor: VoiceTaskProcessor, args) -> int:
    if args.service == 'claude':
        processor.claude_service.set_api_key(args.key)
    else:
        if not args.key.strip():
            raise ValueError("API key must not be empty")
        processor.secure_storage.store_key(SECURE_STORAGE_KEYS["OPENAI_API_KEY"], args.key.strip())
    print(f"Saved {args.service} API key.")
    return 0


def cmd_seed_demo(processor: VoiceTaskProcessor, args) -> int:
    processor.recording_service.add_mock_recordings()
    print(f"{len(processor.recording_service.recordings)} recordings in store.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Turn voice memos into prioritized tasks")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--mock", dest="mock", action="store_true", default=None,
                      help="Use mock transcription and keyword task extraction")
    mode.add_argument("--live", dest="mock", action="store_false",
                      help="Call the real transcription and Claude APIs")

    subparsers = parser.add_subparsers(dest="command", required=True)

    process = subparsers.add_parser("process", help="Transcribe audio files and extract tasks")
    process.add_argument("--folder", default=AUDIO_FOLDER,
                         help=f"Folder containing audio files (default: {AUDIO_FOLDER})")
    process.add_argument("--file", help="Process a single file instead of a folder")
    process.add_argument("--dry-run", action="store_true", help="Show extracted tasks without storing them")
    process.add_argument("--max-files", type=int, help="Maximum number of files to process in this run")
    process.set_defaults(handler=cmd_process)

    record = subparsers.add_parser("record", help="Record a memo from the microphone")
    record.add_argument("--seconds", type=int, default=120, help="Maximum recording length (default: 120)")
    record.set_defaults(handler=cmd_record)

    subparsers.add_parser("recordings", help="List recordings").set_defaults(handler=cmd_recordings)

    transcript = subparsers.add_parser("transcript", help="Show or edit a recording's transcript")
    transcript.add_argument("recording_id")
    transcript.add_argument("--set", help="Replace the transcript text")
    transcript.set_defaults(handler=cmd_transcript)

    extract = subparsers.add_parser("extract", help="Extract tasks from a stored transcript")
    extract.add_argument("recording_id")
    extract.set_defaults(handler=cmd_extract)

    tasks = subparsers.add_parser("tasks", help="List tasks")
    tasks.add_argument("--recording", help="Only tasks from this recording")
    tasks.set_defaults(handler=cmd_tasks)

    complete = subparsers.add_parser("complete", help="Mark a task as completed")
    complete.add_argument("task_id")
    complete.set_defaults(handler=cmd_complete)

    delete = subparsers.add_parser("delete", help="Delete a task")
    delete.add_argument("task_id")
    delete.set_defaults(handler=cmd_delete)

    subparsers.add_parser("clear-tasks", help="Delete all tasks").set_defaults(handler=cmd_clear_tasks)

    calendar = subparsers.add_parser("calendar", help="Google Calendar integration")
    calendar_commands = calendar.add_subparsers(dest="calendar_command", required=True)
    push = calendar_commands.add_parser("push", help="Add a task to the calendar")
    push.add_argument("task_id")
    calendar_commands.add_parser("connect", help="Sign in to Google")
    calendar_commands.add_parser("disconnect", help="Sign out and revoke access")
    calendar_commands.add_parser("status", help="Show the connected account")
    upcoming = calendar_commands.add_parser("upcoming", help="List upcoming events")
    upcoming.add_argument("--max", type=int, default=10)
    calendar.set_defaults(handler=cmd_calendar)

    set_key = subparsers.add_parser("set-key", help="Save an API key to secure storage")
    set_key.add_argument("service", choices=["claude", "openai"])
    set_key.add_argument("key")
    set_key.set_defaults(handler=cmd_set_key)

    subparsers.add_parser("seed-demo", help="Add demo recordings").set_defaults(handler=cmd_seed_demo)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    mock = MOCK_ENABLED if args.mock is None else args.mock
    logger.info(f"Environment: {ENVIRONMENT} (mock={mock}, data={DATA_DIR})")

    try:
        processor = VoiceTaskProcessor(mock=mock, dry_run=getattr(args, 'dry_run', False))
        return args.handler(processor, args)
    except (TaskExtractionError, TaskNotFoundError, RecordingNotFoundError,
            CalendarError, StorageError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        logger.debug(sanitize_json_for_logging(vars(args)))
        return 1


if __name__ == "__main__":
    sys.exit(main())
