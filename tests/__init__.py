"""
Test suite for Janaru Voice Tasks

This package contains tests for all components:
- Local and secure key storage
- Claude and keyword-mock task extraction
- Recording and task list management
- Google Calendar event creation
- The end-to-end voice memo pipeline
"""
