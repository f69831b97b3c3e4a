"""
AI app for thread run orchestration.

This app handles:
- Single-flight generation runs per AI thread
- Durable FIFO queue for messages sent while a run is active
- Streaming (OpenAI) and single-shot (Gemini) provider adapters
- Encrypted per-user provider API keys
- Recovery of stuck runs

Usage:
    from ai.services import RunOrchestrator
    from ai.models import SenderKind

    result = RunOrchestrator.submit(thread.id, user, "Hello", SenderKind.OWNER)
    if result and result.data.status == "queued":
        # Retry later with RunOrchestrator.drain(thread.id)
        ...
"""
