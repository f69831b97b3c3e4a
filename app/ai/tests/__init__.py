"""
Tests for AI app.

This package contains test modules for:
- test_models.py: AIProvider, PromptTemplate, AIRequest model tests
- test_services.py: AIService tests
- test_providers.py: Provider implementation tests
- test_views.py: API endpoint tests

Usage:
    pytest ai/tests/
    pytest ai/tests/test_services.py
"""
