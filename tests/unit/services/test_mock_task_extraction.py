"""
Unit tests for ClaudeService.mock_process_transcript

The keyword matcher stands in for Claude during development, so its output
is pinned down exactly here.
"""
import pytest

from src.models import PRIORITY_HIGH, PRIORITY_MEDIUM


def titles(tasks):
    return [task.title for task in tasks]


class TestKeywordRules:
    """Each keyword rule on its own"""

    def test_taxes(self, mock_claude_service, fixed_today):
        response = mock_claude_service.mock_process_transcript("I have to do my TAXES", 'rec_1', today=fixed_today)

        task = response.high_priority_tasks[0]
        assert titles(response.high_priority_tasks) == ['File your taxes']
        assert (task.date, task.time, task.duration) == ('2025-03-21', '18:00', 120)
        assert response.medium_priority_tasks == []

    @pytest.mark.parametrize("transcript", [
        "take the dog to the vet",
        "my dog needs a doctor",
    ])
    def test_dog_with_vet_or_doctor(self, mock_claude_service, fixed_today, transcript):
        response = mock_claude_service.mock_process_transcript(transcript, 'rec_1', today=fixed_today)

        task = response.high_priority_tasks[0]
        assert task.title == 'Take your dog to the vet'
        assert (task.date, task.time, task.duration) == ('2025-03-23', '18:00', 60)

    def test_dog_alone_is_not_a_vet_visit(self, mock_claude_service, fixed_today):
        response = mock_claude_service.mock_process_transcript("walk the dog", 'rec_1', today=fixed_today)

        assert titles(response.all_tasks) == ['Review your priorities']

    def test_drivers_license(self, mock_claude_service, fixed_today):
        response = mock_claude_service.mock_process_transcript(
            "help mom with her driver's license", 'rec_1', today=fixed_today)

        task = response.high_priority_tasks[0]
        assert task.title == "Help with driver's license"
        assert (task.date, task.time, task.duration) == ('2025-03-26', '10:00', 90)

    @pytest.mark.parametrize("transcript", ["clean the yard", "green waste", "dispose of branches"])
    def test_yard_waste(self, mock_claude_service, fixed_today, transcript):
        response = mock_claude_service.mock_process_transcript(transcript, 'rec_1', today=fixed_today)

        task = response.medium_priority_tasks[0]
        assert task.title == 'Dispose of yard waste'
        assert (task.date, task.time, task.duration) == ('2025-03-28', None, 60)
        assert titles(task.sub_tasks) == ['Research disposal options', 'Schedule pickup or dropoff']

    @pytest.mark.parametrize("transcript", ["I want a vacation", "feeling burnt out", "total burnout"])
    def test_vacation(self, mock_claude_service, fixed_today, transcript):
        response = mock_claude_service.mock_process_transcript(transcript, 'rec_1', today=fixed_today)

        task = response.medium_priority_tasks[0]
        assert task.title == 'Plan vacation for burnout recovery'
        assert (task.date, task.time, task.duration) == ('2025-04-04', None, 120)
        assert titles(task.sub_tasks) == ['Research destinations', 'Check available time off']

    def test_default_task_when_nothing_matches(self, mock_claude_service, fixed_today):
        response = mock_claude_service.mock_process_transcript("hello world", 'rec_1', today=fixed_today)

        assert response.medium_priority_tasks == []
        task = response.high_priority_tasks[0]
        assert task.title == 'Review your priorities'
        assert (task.date, task.time, task.duration) == ('2025-03-21', '18:00', 30)


class TestFullTranscript:
    """The demo transcript triggers every rule"""

    def test_all_rules(self, mock_claude_service, fixed_today, sample_transcript):
        response = mock_claude_service.mock_process_transcript(sample_transcript, 'rec_1', today=fixed_today)

        assert titles(response.high_priority_tasks) == [
            'File your taxes', 'Take your dog to the vet', "Help with driver's license"
        ]
        assert titles(response.medium_priority_tasks) == [
            'Dispose of yard waste', 'Plan vacation for burnout recovery'
        ]

    def test_tasks_are_stamped(self, mock_claude_service, fixed_today, sample_transcript):
        response = mock_claude_service.mock_process_transcript(sample_transcript, 'rec_42', today=fixed_today)

        for task in response.high_priority_tasks:
            assert task.priority == PRIORITY_HIGH
        for task in response.medium_priority_tasks:
            assert task.priority == PRIORITY_MEDIUM
        for task in response.all_tasks:
            assert task.recording_id == 'rec_42'
            assert task.completed is False
            assert task.id.startswith('task_')
            assert all(sub_task.id.startswith('subtask_') for sub_task in task.sub_tasks)

    def test_ids_are_unique(self, mock_claude_service, fixed_today, sample_transcript):
        response = mock_claude_service.mock_process_transcript(sample_transcript, 'rec_1', today=fixed_today)
        ids = [task.id for task in response.all_tasks]
        ids += [sub.id for task in response.all_tasks for sub in task.sub_tasks]

        assert len(ids) == len(set(ids))

    def test_extract_tasks_uses_mock_in_mock_mode(self, mock_claude_service, sample_transcript):
        response = mock_claude_service.extract_tasks(sample_transcript, 'rec_1')

        assert len(response.all_tasks) == 5
