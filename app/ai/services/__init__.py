"""
AI services.

- orchestrator.py: RunOrchestrator (submit, drain, discard_pending)
- credentials.py: CredentialResolver (resolve, store)
- history.py: HistoryLoader
- messages.py: MessageWriter
- stream.py: StreamSink
- reaper.py: StaleRunReaper
"""

from .credentials import CredentialResolver
from .history import HistoryLoader
from .messages import MessageWriter
from .orchestrator import RunOrchestrator, RunOutcome, RunOutcomeStatus
from .reaper import StaleRunReaper
from .stream import StreamSink

__all__ = [
    "CredentialResolver",
    "HistoryLoader",
    "MessageWriter",
    "RunOrchestrator",
    "RunOutcome",
    "RunOutcomeStatus",
    "StaleRunReaper",
    "StreamSink",
]
