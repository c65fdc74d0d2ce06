"""
Recording Service - Voice memo metadata
Keeps the list of recordings and their transcripts in local storage
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from config.config import STORAGE_KEYS
from src.audio_service import MOCK_TRANSCRIPT
from src.models import Recording
from src.storage import LocalStorage, StorageError
from src.utils import clean_filename, generate_secure_id, parse_iso_timestamp

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class RecordingNotFoundError(LookupError):
    """Raised when a recording id is not in the store"""


class RecordingService:
    def __init__(self, storage: LocalStorage, audio_service=None):
        self.storage = storage
        self.audio_service = audio_service
        self.recordings: List[Recording] = []

        # Load recordings from storage on initialization
        self.load_recordings()

    def load_recordings(self) -> None:
        """Load recordings from local storage"""
        try:
            raw_recordings = self.storage.get_json(STORAGE_KEYS["RECORDINGS"], default=[])
            if not isinstance(raw_recordings, list) or not all(isinstance(item, dict) for item in raw_recordings):
                raise StorageError(f"Value for {STORAGE_KEYS['RECORDINGS']} is not a list of recordings")
            self.recordings = [Recording.from_dict(item) for item in raw_recordings]
            logger.info(f"Loaded {len(self.recordings)} recordings from storage")
        except StorageError as e:
            logger.error(f"Failed to load recordings from storage: {e}")
            self.recordings = []

    def save_recordings(self) -> None:
        """Save recordings to local storage"""
        try:
            self.storage.set_json(STORAGE_KEYS["RECORDINGS"], [rec.to_dict() for rec in self.recordings])
        except StorageError as e:
            logger.error(f"Failed to save recordings to storage: {e}")
            raise

    def add_recording(self, recording: Recording) -> str:
        """Add a new recording and return its id"""
        if not recording.id:
            recording.id = generate_secure_id('rec')

        self.recordings.append(recording)
        self.save_recordings()

        logger.info(f"Added recording {recording.id}: {recording.title}")
        return recording.id

    def create_recording(self, audio_path: str, title: Optional[str] = None,
                         duration: Optional[float] = None) -> Recording:
        """Register an audio file as a new, untranscribed recording"""
        file_size = None
        if self.audio_service and duration is None:
            metadata = self.audio_service.get_audio_metadata(audio_path)
            duration = metadata['duration_seconds']
            file_size = metadata['file_size'] or None
        elif Path(audio_path).exists():
            file_size = Path(audio_path).stat().st_size

        recording = Recording(
            id='',
            title=title or clean_filename(Path(audio_path).name) or 'Voice Memo',
            date=datetime.now(timezone.utc).isoformat(),
            audio_uri=str(Path(audio_path).resolve()),
            transcript=None,
            duration=round(duration or 0, 1),
            processed=False,
            file_size=file_size,
        )
        self.add_recording(recording)
        return recording

    def get_recordings(self) -> List[Recording]:
        """Get all recordings, newest first"""
        def sort_key(rec: Recording) -> datetime:
            parsed = parse_iso_timestamp(rec.date)
            if parsed is None:
                return _EPOCH
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed

        return sorted(self.recordings, key=sort_key, reverse=True)

    def get_recording_by_id(self, recording_id: str) -> Optional[Recording]:
        return next((rec for rec in self.recordings if rec.id == recording_id), None)

    def get_recording_by_audio_uri(self, audio_uri: str) -> Optional[Recording]:
        resolved = str(Path(audio_uri).resolve())
        return next((rec for rec in self.recordings if rec.audio_uri == resolved), None)

    def _require(self, recording_id: str) -> Recording:
        recording = self.get_recording_by_id(recording_id)
        if not recording:
            raise RecordingNotFoundError(f"Recording not found: {recording_id}")
        return recording

    def update_recording_transcript(self, recording_id: str, transcript: str) -> None:
        recording = self._require(recording_id)
        recording.transcript = transcript
        self.save_recordings()

    def mark_recording_as_processed(self, recording_id: str) -> None:
        recording = self._require(recording_id)
        recording.processed = True
        self.save_recordings()

    def delete_recording(self, recording_id: str) -> bool:
        """Remove a recording; returns False if it did not exist"""
        before = len(self.recordings)
        self.recordings = [rec for rec in self.recordings if rec.id != recording_id]
        if len(self.recordings) == before:
            return False

        self.save_recordings()
        logger.info(f"Deleted recording {recording_id}")
        return True

    def add_mock_recordings(self) -> None:
        """Add demo recordings, only when there are none yet"""
        if self.recordings:
            return

        self.recordings.extend([
            Recording(
                id='rec_1',
                title='Vent from Washington Heights',
                date='2025-03-21T10:30:00.000Z',
                audio_uri='file:///mock/recording1.m4a',
                transcript=MOCK_TRANSCRIPT,
                duration=32,
                processed=True,
            ),
            Recording(
                id='rec_2',
                title='Vent from Washington Heights',
                date='2025-03-21T15:45:00.000Z',
                audio_uri='file:///mock/recording2.m4a',
                transcript=None,
                duration=18,
                processed=False,
            ),
        ])
        self.save_recordings()
        logger.info("Added demo recordings")
