"""Tests for the per-track playback session."""

import asyncio
import threading
import time

import pytest

from music_storefront.domain.errors import DecodeError, FetchError
from music_storefront.domain.preview import TransportState


async def tick(times: int = 5) -> None:
    for _ in range(times):
        await asyncio.sleep(0.002)


class TestLoading:
    def test_play_loads_once_and_starts_from_zero(self, audio_backend, make_session, outputs):
        session = make_session()

        async def scenario():
            assert await session.play()
            assert session.is_playing
            assert session.progress == 0.0
            assert len(session.waveform) == 50
            session.pause()
            assert await session.play()
            session.dispose()

        asyncio.run(scenario())

        audio_backend.assert_called_once_with("media/clip.mp3")
        assert len(outputs) == 1
        assert outputs[0].plays == 2

    def test_concurrent_loads_share_one_decode(self, audio_backend, make_session):
        session = make_session()

        async def scenario():
            results = await asyncio.gather(*(session.ensure_loaded() for _ in range(5)))
            session.dispose()
            return results

        assert asyncio.run(scenario()) == [True] * 5
        audio_backend.assert_called_once()

    def test_loading_flag_only_until_waveform_exists(self, audio_backend, make_session):
        session = make_session()

        async def scenario():
            task = asyncio.create_task(session.ensure_loaded())
            await asyncio.sleep(0)
            loading_during = session.is_loading
            await task
            loading_after = session.is_loading
            await session.play()
            loading_on_replay = session.is_loading
            session.dispose()
            return loading_during, loading_after, loading_on_replay

        assert asyncio.run(scenario()) == (True, False, False)

    @pytest.mark.parametrize("error", [FetchError("404"), DecodeError("garbage")])
    def test_failed_load_degrades_track(self, audio_backend, make_session, outputs, error):
        audio_backend.side_effect = error
        session = make_session()

        async def scenario():
            return await session.play()

        assert asyncio.run(scenario()) is False
        assert session.failed
        assert not session.playable
        assert session.state is TransportState.IDLE
        assert outputs == []

    def test_no_preview_source_is_not_playable(self, audio_backend, make_session):
        session = make_session(source=None)

        assert asyncio.run(session.play()) is False
        audio_backend.assert_not_called()


class TestTransport:
    def test_progress_follows_output_clock(self, audio_backend, make_session, outputs):
        session = make_session()

        async def scenario():
            await session.play()
            outputs[0].position = 15.0
            await tick()
            progress = session.progress
            session.dispose()
            return progress

        assert asyncio.run(scenario()) == pytest.approx(0.5)

    def test_pause_resets_and_replay_restarts(self, audio_backend, make_session, outputs):
        session = make_session()

        async def scenario():
            await session.play()
            outputs[0].position = 10.0
            await tick()
            session.pause()
            await tick()
            paused = (session.state, session.progress, outputs[0].position)
            await session.play()
            replayed = (session.state, session.progress, outputs[0].position)
            session.dispose()
            return paused, replayed

        paused, replayed = asyncio.run(scenario())
        assert paused == (TransportState.PAUSED, 0.0, None)
        assert replayed == (TransportState.PLAYING, 0.0, 0.0)

    def test_natural_end_takes_the_stopped_path(self, audio_backend, make_session, outputs):
        session = make_session()
        finished = []
        session.on_finished = finished.append

        async def scenario():
            await session.play()
            outputs[0].position = 30.0
            await tick(10)
            state = (session.state, session.progress, session._animation_task)
            session.dispose()
            return state

        assert asyncio.run(scenario()) == (TransportState.PAUSED, 0.0, None)
        assert finished == ["1"]
        assert outputs[0].stops >= 1

    def test_output_going_idle_ends_preview(self, audio_backend, make_session, outputs):
        session = make_session()
        finished = []
        session.on_finished = finished.append

        async def scenario():
            await session.play()
            outputs[0].position = 5.0
            await tick()
            outputs[0].position = None
            await tick()
            session.dispose()

        asyncio.run(scenario())
        assert finished == ["1"]

    def test_pause_while_loading_supersedes_play(self, audio_backend, make_session, outputs):
        session = make_session()

        async def scenario():
            play = asyncio.create_task(session.play())
            await asyncio.sleep(0)
            session.pause()
            started = await play
            session.dispose()
            return started

        assert asyncio.run(scenario()) is False
        assert all(output.plays == 0 for output in outputs)


class TestLifecycle:
    def test_dispose_releases_everything(self, audio_backend, make_session, outputs):
        session = make_session()

        async def scenario():
            await session.play()
            clip_path = outputs[0].loaded
            session.dispose()
            session.dispose()
            await tick()
            return clip_path

        clip_path = asyncio.run(scenario())
        assert outputs[0].closed
        assert not clip_path.exists()
        assert session.decoded is None
        assert session.waveform is None
        assert not session.is_playing
        assert not session.playable

    def test_source_change_drops_audio_state(self, audio_backend, make_session):
        session = make_session()

        async def scenario():
            await session.ensure_loaded()
            session.set_track(session.track._replace(audio_preview_source="media/other.mp3"))
            dropped = session.waveform is None
            await session.ensure_loaded()
            session.dispose()
            return dropped

        assert asyncio.run(scenario()) is True
        assert [c.args[0] for c in audio_backend.call_args_list] == [
            "media/clip.mp3",
            "media/other.mp3",
        ]

    def test_same_source_keeps_audio_state(self, audio_backend, make_session):
        session = make_session()

        async def scenario():
            await session.ensure_loaded()
            session.set_track(session.track._replace(title="Renamed"))
            kept = session.waveform is not None
            session.dispose()
            return kept

        assert asyncio.run(scenario()) is True


class TestOutputCommands:
    def test_output_calls_run_off_the_event_loop(self, audio_backend, make_session, outputs):
        session = make_session()

        async def scenario():
            await session.play()
            outputs[0].position = 3.0
            await tick()
            session.pause()
            await tick()
            session.dispose()

        asyncio.run(scenario())
        assert outputs[0].threads
        assert threading.get_ident() not in outputs[0].threads

    def test_slow_output_does_not_stall_the_loop(self, audio_backend, make_session, outputs):
        session = make_session()
        frames = []

        async def count_frames():
            while True:
                frames.append(1)
                await asyncio.sleep(0.001)

        async def scenario():
            await session.play()
            slow = outputs[0]
            original_clock = slow.clock

            def stalled_clock():
                time.sleep(0.05)
                return original_clock()

            slow.clock = stalled_clock
            counter = asyncio.create_task(count_frames())
            await asyncio.sleep(0.04)
            counted = len(frames)
            counter.cancel()
            session.dispose()
            return counted

        assert asyncio.run(scenario()) > 5

    def test_pause_queues_stop_after_play(self, audio_backend, make_session, outputs):
        session = make_session()

        async def scenario():
            await session.play()
            session.pause()
            started = await session.play()
            session.pause()
            await tick()
            session.dispose()
            return started

        assert asyncio.run(scenario()) is True
        assert outputs[0].plays == 2
        assert outputs[0].stops == 2
        assert outputs[0].position is None
