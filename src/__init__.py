"""
Janaru Voice Tasks - Turn spoken voice memos into prioritized, schedulable tasks

This package provides tools for:
- Voice memo capture and transcription (OpenAI speech-to-text with Google fallback)
- Claude-powered extraction of high and medium priority tasks
- Local persistence of recordings and task lists
- Google Calendar event creation for tasks
"""

__version__ = "1.0.0"
__author__ = "Janaru"
__description__ = "Turn spoken voice memos into prioritized, schedulable tasks"
