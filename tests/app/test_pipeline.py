"""
Tests for listen_copilot.app.pipeline.

The pipeline runs end to end against an in-memory source and fake
transcription/chat collaborators.
"""

import asyncio
import logging
from dataclasses import replace
from unittest.mock import AsyncMock

import pytest

from listen_copilot.app.pipeline import ListenPipeline
from listen_copilot.core.errors import DeliveryError, NoAudioTrack
from listen_copilot.core.runtime_config import ConfigStore


class ScriptedTranscriber:
    """Returns scripted texts in call order; None means an error status."""

    def __init__(self, texts):
        self.texts = list(texts)
        self.calls = []

    async def __call__(self, segment):
        self.calls.append(segment.sequence)
        await asyncio.sleep(0.005)
        text = self.texts.pop(0)
        if text is None:
            raise DeliveryError("500")
        return text


@pytest.fixture
def store(fast_config):
    return ConfigStore(fast_config)


def build(source, store, texts, chat=None):
    transcriber = ScriptedTranscriber(texts)
    chat = chat or AsyncMock(return_value="Reply")
    transcripts = []
    pipeline = ListenPipeline(
        acquire=lambda: source,
        transcribe=transcriber,
        send_chat=chat,
        config_store=store,
        on_transcript=transcripts.append,
    )
    return pipeline, transcriber, chat, transcripts


class TestListenPipeline:
    """End-to-end pipeline behaviour."""

    @pytest.mark.asyncio
    async def test_start_opens_segment(self, source, store):
        pipeline, *_ = build(source, store, [])
        session = await pipeline.start()
        assert pipeline.is_listening is True
        assert session.is_recording is True

        # Idempotent
        assert await pipeline.start() is session
        await pipeline.close()
        assert source.released == 1

    @pytest.mark.asyncio
    async def test_start_failure_surfaces(self, source, store):
        source.channels = 0
        pipeline, *_ = build(source, store, [])
        with pytest.raises(NoAudioTrack):
            await pipeline.start()
        assert pipeline.is_listening is False

    @pytest.mark.asyncio
    async def test_question_flows_to_chat(self, source, store):
        pipeline, transcriber, chat, transcripts = build(
            source, store, ["Hello", "world?"]
        )
        await pipeline.start()

        source.push()
        await pipeline.restart_segment()
        source.push()
        await pipeline.restart_segment()
        await pipeline.dispatcher.join()

        assert transcriber.calls == [0, 1]
        chat.assert_awaited_once_with("Hello world?")
        assert pipeline.accumulator.text == ""
        assert "Hello world?" in transcripts
        await pipeline.close()

    @pytest.mark.asyncio
    async def test_failed_segment_skipped(self, source, store):
        pipeline, transcriber, chat, _ = build(source, store, ["Is", None, "it?"])
        await pipeline.start()
        for _ in range(3):
            source.push()
            await pipeline.restart_segment()
        await pipeline.dispatcher.join()

        assert transcriber.calls == [0, 1, 2]
        chat.assert_awaited_once_with("Is it?")
        await pipeline.close()

    @pytest.mark.asyncio
    async def test_stop_delivers_last_segment(self, source, store):
        pipeline, transcriber, chat, _ = build(source, store, ["final words"])
        await pipeline.start()
        source.push()
        await pipeline.stop()
        await pipeline.dispatcher.join()

        assert transcriber.calls == [0]
        assert pipeline.accumulator.text == "final words"
        assert await pipeline.flush() == "final words"
        chat.assert_awaited_once_with("final words")
        await pipeline.close()

    @pytest.mark.asyncio
    async def test_restart_segment_reopens_after_failure(self, source, store):
        pipeline, *_ = build(source, store, [])
        session = await pipeline.start()
        await pipeline.manager.finalize_segment()
        assert session.is_recording is False

        assert await pipeline.restart_segment() is True
        assert session.is_recording is True
        await pipeline.close()

    @pytest.mark.asyncio
    async def test_config_updates_reach_detector(self, source, store):
        pipeline, *_ = build(source, store, [])
        await pipeline.start()
        store.update(silence_threshold=0.2, settle_delay_ms=5)
        assert pipeline.manager.detector.threshold == 0.2
        assert pipeline.coordinator.settle_delay_ms == 5
        await pipeline.close()

    @pytest.mark.asyncio
    async def test_close_without_start(self, source, store):
        pipeline, *_ = build(source, store, [])
        await pipeline.close()
        assert source.released == 0


class TestManualControlDuringRestart:
    """Manual commands issued while a restart sequence is settling."""

    @pytest.mark.asyncio
    async def test_start_during_settle_leaves_segment_to_restart(self, source, fast_config):
        store = ConfigStore(replace(fast_config, settle_delay_ms=100))
        pipeline, *_ = build(source, store, [])
        session = await pipeline.start()

        task = pipeline.coordinator.trigger()
        await asyncio.sleep(0.02)
        assert session.guard.in_progress is True

        await pipeline.start()
        assert session.is_recording is False

        assert await task is True
        assert session.is_recording is True
        assert session.guard.in_progress is False
        await pipeline.close()

    @pytest.mark.asyncio
    async def test_next_during_settle_is_ignored(self, source, fast_config, caplog):
        store = ConfigStore(replace(fast_config, settle_delay_ms=100))
        pipeline, *_ = build(source, store, [])
        session = await pipeline.start()

        task = pipeline.coordinator.trigger()
        await asyncio.sleep(0.02)
        with caplog.at_level(logging.ERROR):
            assert await pipeline.restart_segment() is False
            assert await task is True

        assert session.is_recording is True
        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]
        await pipeline.close()
