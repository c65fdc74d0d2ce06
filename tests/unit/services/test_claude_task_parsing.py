"""
Unit tests for ClaudeService.process_transcript and API key handling

The Anthropic client is patched; these tests check the request we send
and how the JSON reply becomes prioritized tasks.
"""
import json
import pytest
from unittest.mock import Mock, patch
from anthropic import APIConnectionError

from src.claude_service import ClaudeService, TaskExtractionError
from src.models import PRIORITY_HIGH, PRIORITY_MEDIUM
from src.storage import StorageError


def claude_reply(text):
    return Mock(content=[Mock(text=text)])


@pytest.fixture
def claude_service(secure_storage):
    """ClaudeService talking to a (patched) Claude client"""
    return ClaudeService(api_key='test-api-key', secure_storage=secure_storage, mock=False)


@pytest.fixture
def task_json():
    return json.dumps({
        "highPriorityTasks": [
            {"title": "File your taxes", "date": "2025-03-21", "time": "18:00", "duration": 120,
             "completed": True, "subTasks": [{"title": "Find W-2"}]},
        ],
        "mediumPriorityTasks": [
            {"title": "Dispose of yard waste", "date": None, "time": None, "duration": 60,
             "priority": "high"},
        ],
    })


class TestProcessTranscript:

    def test_request_parameters(self, claude_service, task_json, fixed_today):
        with patch.object(claude_service.client.messages, 'create') as mock_create:
            mock_create.return_value = claude_reply(task_json)

            claude_service.process_transcript("I need to do my taxes", 'rec_1', today=fixed_today)

            mock_create.assert_called_once()
            call_kwargs = mock_create.call_args[1]
            assert call_kwargs['model'] == claude_service.model
            assert call_kwargs['temperature'] == 0.2
            prompt = call_kwargs['messages'][0]['content']
            assert "I need to do my taxes" in prompt
            assert "2025-03-21" in prompt

    def test_parses_both_lists(self, claude_service, task_json):
        with patch.object(claude_service.client.messages, 'create', return_value=claude_reply(task_json)):
            response = claude_service.process_transcript("taxes and yard", 'rec_1')

        high = response.high_priority_tasks
        medium = response.medium_priority_tasks
        assert [t.title for t in high] == ['File your taxes']
        assert [t.title for t in medium] == ['Dispose of yard waste']
        assert (high[0].date, high[0].time, high[0].duration) == ('2025-03-21', '18:00', 120)
        assert medium[0].date is None

    def test_list_decides_priority(self, claude_service, task_json):
        with patch.object(claude_service.client.messages, 'create', return_value=claude_reply(task_json)):
            response = claude_service.process_transcript("x", 'rec_1')

        assert response.high_priority_tasks[0].priority == PRIORITY_HIGH
        assert response.medium_priority_tasks[0].priority == PRIORITY_MEDIUM

    def test_tasks_are_stamped(self, claude_service, task_json):
        with patch.object(claude_service.client.messages, 'create', return_value=claude_reply(task_json)):
            response = claude_service.process_transcript("x", 'rec_7')

        for task in response.all_tasks:
            assert task.id.startswith('task_')
            assert task.recording_id == 'rec_7'
            assert task.completed is False

        sub_task = response.high_priority_tasks[0].sub_tasks[0]
        assert sub_task.title == 'Find W-2'
        assert sub_task.id.startswith('subtask_')

    def test_json_wrapped_in_prose(self, claude_service, task_json):
        reply = f"Here are your tasks:\n```json\n{task_json}\n```\nLet me know!"

        with patch.object(claude_service.client.messages, 'create', return_value=claude_reply(reply)):
            response = claude_service.process_transcript("x", 'rec_1')

        assert len(response.all_tasks) == 2

    def test_snake_case_keys(self, claude_service):
        reply = json.dumps({"high_priority_tasks": [{"title": "Call the bank"}], "medium_priority_tasks": []})

        with patch.object(claude_service.client.messages, 'create', return_value=claude_reply(reply)):
            response = claude_service.process_transcript("x", 'rec_1')

        assert [t.title for t in response.high_priority_tasks] == ['Call the bank']

    def test_missing_lists_are_empty(self, claude_service):
        with patch.object(claude_service.client.messages, 'create', return_value=claude_reply('{}')):
            response = claude_service.process_transcript("um, nothing really", 'rec_1')

        assert response.all_tasks == []

    def test_malformed_entries_skipped(self, claude_service):
        reply = json.dumps({
            "highPriorityTasks": ["just a string", {"title": ""}, {"title": "Real task"}],
            "mediumPriorityTasks": [],
        })

        with patch.object(claude_service.client.messages, 'create', return_value=claude_reply(reply)):
            response = claude_service.process_transcript("x", 'rec_1')

        assert [t.title for t in response.all_tasks] == ['Real task']

    def test_null_title_skipped(self, claude_service):
        reply = '{"highPriorityTasks": [{"title": null}, {"title": "Call the vet"}], "mediumPriorityTasks": []}'

        with patch.object(claude_service.client.messages, 'create', return_value=claude_reply(reply)):
            response = claude_service.process_transcript("x", 'rec_1')

        assert [t.title for t in response.all_tasks] == ['Call the vet']

    def test_braces_in_trailing_prose(self, claude_service, task_json):
        reply = f"{task_json}\nNote: dates use {{YYYY-MM-DD}}."

        with patch.object(claude_service.client.messages, 'create', return_value=claude_reply(reply)):
            response = claude_service.process_transcript("x", 'rec_1')

        assert [t.title for t in response.all_tasks] == ['File your taxes', 'Dispose of yard waste']


class TestProcessTranscriptErrors:

    def test_no_json(self, claude_service):
        with patch.object(claude_service.client.messages, 'create',
                          return_value=claude_reply("I couldn't find any tasks.")):
            with pytest.raises(TaskExtractionError):
                claude_service.process_transcript("x", 'rec_1')

    def test_invalid_json(self, claude_service):
        with patch.object(claude_service.client.messages, 'create',
                          return_value=claude_reply('{"highPriorityTasks": [}')):
            with pytest.raises(TaskExtractionError):
                claude_service.process_transcript("x", 'rec_1')

    def test_list_field_of_wrong_type(self, claude_service):
        with patch.object(claude_service.client.messages, 'create',
                          return_value=claude_reply('{"highPriorityTasks": "none"}')):
            with pytest.raises(TaskExtractionError):
                claude_service.process_transcript("x", 'rec_1')

    def test_api_error(self, claude_service):
        error = APIConnectionError(request=Mock())

        with patch.object(claude_service.client.messages, 'create', side_effect=error):
            with pytest.raises(TaskExtractionError):
                claude_service.process_transcript("x", 'rec_1')

    def test_extract_tasks_uses_claude_when_not_mock(self, claude_service, task_json):
        with patch.object(claude_service.client.messages, 'create', return_value=claude_reply(task_json)) as mock_create:
            claude_service.extract_tasks("x", 'rec_1')

        mock_create.assert_called_once()


class TestApiKeys:

    def test_requires_key_outside_mock_mode(self, secure_storage):
        with patch('src.claude_service.CLAUDE_API_KEY', None):
            with pytest.raises(ValueError):
                ClaudeService(secure_storage=secure_storage, mock=False)

    def test_mock_mode_without_key(self, secure_storage):
        with patch('src.claude_service.CLAUDE_API_KEY', None):
            service = ClaudeService(secure_storage=secure_storage, mock=True)

        assert service.client is None
        with pytest.raises(ValueError):
            service.process_transcript("x", 'rec_1')

    def test_uses_stored_key(self, secure_storage):
        secure_storage.store_key('janaru_claude_api_key', 'sk-stored')

        with patch('src.claude_service.CLAUDE_API_KEY', None):
            service = ClaudeService(secure_storage=secure_storage, mock=False)

        assert service.client is not None
        assert service.client.api_key == 'sk-stored'

    def test_set_api_key(self, secure_storage):
        with patch('src.claude_service.CLAUDE_API_KEY', None):
            service = ClaudeService(secure_storage=secure_storage, mock=True)

        assert service.validate_api_key_exists() is False

        service.set_api_key('  sk-new  ')

        assert service.validate_api_key_exists() is True
        assert secure_storage.get_key('janaru_claude_api_key') == 'sk-new'
        assert service.client is not None

    def test_set_empty_api_key(self, mock_claude_service):
        with pytest.raises(ValueError):
            mock_claude_service.set_api_key('   ')

    def test_set_api_key_storage_failure(self, mock_claude_service):
        with patch.object(mock_claude_service.secure_storage, 'store_key',
                          side_effect=StorageError("Could not securely store API key")):
            with pytest.raises(ValueError, match="Failed to save API key"):
                mock_claude_service.set_api_key('sk-new')
