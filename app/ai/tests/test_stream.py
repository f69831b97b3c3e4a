"""
Tests for StreamSink.
"""

import pytest
from django.db import IntegrityError, transaction

from ai.models import AIStreamEvent
from ai.services import StreamSink
from ai.tests.factories import AIRunFactory


@pytest.fixture
def run(db):
    return AIRunFactory()


class TestStreamSink:
    def test_writer_numbers_events_from_zero(self, run):
        write = StreamSink.writer(run)

        write("Hel")
        write("lo")
        write("!")

        events = list(AIStreamEvent.objects.filter(run=run).values_list("seq", "delta"))
        assert events == [(0, "Hel"), (1, "lo"), (2, "!")]
        assert all(e.thread_id == run.thread_id for e in AIStreamEvent.objects.filter(run=run))

    def test_writers_are_scoped_per_run(self, db):
        first = AIRunFactory()
        second = AIRunFactory()

        StreamSink.writer(first)("a")
        StreamSink.writer(second)("b")

        assert AIStreamEvent.objects.get(run=first).seq == 0
        assert AIStreamEvent.objects.get(run=second).seq == 0

    def test_replay_concatenates_in_seq_order(self, run):
        StreamSink.append(run.thread_id, run.id, 1, " world")
        StreamSink.append(run.thread_id, run.id, 0, "Hello")

        assert StreamSink.replay(run) == "Hello world"

    def test_replay_after_seq(self, run):
        write = StreamSink.writer(run)
        for fragment in ["a", "b", "c"]:
            write(fragment)

        assert StreamSink.replay(run, after_seq=0) == "bc"
        assert [e.seq for e in StreamSink.events(run, after_seq=1)] == [2]

    def test_duplicate_seq_rejected(self, run):
        StreamSink.append(run.thread_id, run.id, 0, "a")

        with pytest.raises(IntegrityError), transaction.atomic():
            StreamSink.append(run.thread_id, run.id, 0, "b")
