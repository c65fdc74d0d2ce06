"""
Pytest configuration and fixtures for Janaru Voice Tasks testing
"""
import pytest
import os
import tempfile
from datetime import date
from pathlib import Path
from unittest.mock import Mock

# Import our modules
import sys
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from src.audio_service import MOCK_TRANSCRIPT
from src.claude_service import ClaudeService
from src.models import PRIORITY_HIGH, PRIORITY_MEDIUM, SubTask, Task
from src.storage import LocalStorage, SecureKeyStorage


@pytest.fixture
def storage(tmp_path):
    """LocalStorage backed by a temp file"""
    return LocalStorage(tmp_path / 'storage.json')


@pytest.fixture
def secure_storage(tmp_path):
    """SecureKeyStorage backed by a temp file"""
    return SecureKeyStorage(tmp_path / 'secure_keys.json')


@pytest.fixture
def mock_claude_service(secure_storage):
    """ClaudeService running the keyword mock, no API calls"""
    return ClaudeService(secure_storage=secure_storage, mock=True)


@pytest.fixture
def mock_calendar_service():
    """Mock calendar service that always creates an event"""
    calendar = Mock()
    calendar.create_event_for_task.return_value = 'evt_test_123'
    return calendar


@pytest.fixture
def fixed_today():
    return date(2025, 3, 21)


@pytest.fixture
def sample_transcript():
    """Transcript that triggers every mock extraction rule"""
    return MOCK_TRANSCRIPT


@pytest.fixture
def sample_task():
    return Task(
        id='task_1',
        title='Dispose of yard waste',
        priority=PRIORITY_MEDIUM,
        date='2025-03-28',
        time=None,
        duration=60,
        recording_id='rec_1',
        sub_tasks=[
            SubTask(id='subtask_1', title='Research disposal options'),
            SubTask(id='subtask_2', title='Schedule pickup or dropoff'),
        ],
    )


@pytest.fixture
def sample_high_task():
    return Task(
        id='task_2',
        title='File your taxes',
        priority=PRIORITY_HIGH,
        date='2025-03-21',
        time='18:00',
        duration=120,
        recording_id='rec_1',
    )


@pytest.fixture
def temp_audio_file():
    """Create a temporary audio file for testing"""
    with tempfile.NamedTemporaryFile(suffix='.m4a', delete=False) as temp_file:
        # Write some dummy data
        temp_file.write(b'fake audio data for testing' * 1000)
        temp_file.flush()

        yield Path(temp_file.name)

        # Cleanup
        try:
            os.unlink(temp_file.name)
        except FileNotFoundError:
            pass


def pytest_configure(config):
    """Configure pytest with custom markers and settings"""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test across several services"
    )
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow running"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically"""
    for item in items:
        # Mark integration tests
        if 'integration' in item.nodeid:
            item.add_marker(pytest.mark.integration)
