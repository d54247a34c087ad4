import unittest
from unittest.mock import MagicMock, patch

import requests

from surrogateagent.errors import SpeechSynthesisError
from surrogateagent.services.speech import (
    BufferedAudioPlayer,
    SpeechService,
    prepare_speech_text,
    speech_endpoints,
)


def _audio_response(content=b"ID3audio", ok=True, status=200):
    res = MagicMock()
    res.ok = ok
    res.status_code = status
    res.content = content
    return res


class _FakeHandle:
    def __init__(self, name):
        self.name = name
        self.stopped = False
        self.released = False

    def stop(self):
        self.stopped = True

    def release(self):
        self.released = True


class _FakePlayer:
    def __init__(self, reject_first=0):
        self.reject_first = reject_first
        self.handles = []
        self.callbacks = []

    def play(self, audio, on_finish):
        if self.reject_first:
            self.reject_first -= 1
            raise RuntimeError("unsupported codec")
        handle = _FakeHandle(f"h{len(self.handles)}")
        self.handles.append(handle)
        self.callbacks.append(on_finish)
        return handle


class SpeechTextTests(unittest.TestCase):
    def test_truncates_long_text_and_strips_symbols(self):
        text = "Acme™ " + "x" * 400
        prepared = prepare_speech_text(text, 250)
        self.assertTrue(prepared.endswith("..."))
        self.assertNotIn("™", prepared)
        self.assertEqual(len(prepared), 252)

    def test_endpoint_order_and_alternate_cleaning(self):
        endpoints = speech_endpoints("Hello, world!", "en-US-AriaNeural")
        self.assertEqual([e.name for e in endpoints], ["google_tts", "google_tts_alternate", "edge_tts"])
        self.assertIn("client=tw-ob", endpoints[0].url)
        self.assertIn("q=Hello++world&", endpoints[1].url)
        self.assertIn("client=gtx&prev=input", endpoints[1].url)
        self.assertTrue(endpoints[2].url.startswith("https://convert.rocks/api/edge-tts?text=Hello%2C+world%21"))
        self.assertIn("voice=en-US-AriaNeural", endpoints[2].url)


class SpeechServiceTests(unittest.TestCase):
    @patch("surrogateagent.services.speech.requests.get")
    def test_first_endpoint_success(self, mock_get):
        mock_get.return_value = _audio_response()
        player = _FakePlayer()
        service = SpeechService(player)
        result = service.speak("Hello there", "m1")
        self.assertEqual(result.provider, "google_tts")
        self.assertEqual(result.audio_bytes, len(b"ID3audio"))
        self.assertTrue(service.is_speaking("m1"))
        self.assertEqual(mock_get.call_count, 1)

    @patch("surrogateagent.services.speech.requests.get")
    def test_fetch_errors_empty_audio_and_player_rejection_advance(self, mock_get):
        mock_get.side_effect = [requests.Timeout("slow"), _audio_response(b""), _audio_response()]
        player = _FakePlayer()
        result = SpeechService(player).speak("Hi", "m1")
        self.assertEqual(result.provider, "edge_tts")

        mock_get.side_effect = None
        mock_get.return_value = _audio_response()
        player = _FakePlayer(reject_first=1)
        result = SpeechService(player).speak("Hi", "m2")
        self.assertEqual(result.provider, "google_tts_alternate")

    @patch("surrogateagent.services.speech.requests.get")
    def test_all_endpoints_failing_raises_and_clears_speaking_state(self, mock_get):
        mock_get.return_value = _audio_response(ok=False, status=503)
        service = SpeechService(_FakePlayer())
        with self.assertRaises(SpeechSynthesisError):
            service.speak("Hi", "m1")
        self.assertFalse(service.is_speaking())

    @patch("surrogateagent.services.speech.requests.get")
    def test_new_speak_releases_previous_handle(self, mock_get):
        mock_get.return_value = _audio_response()
        player = _FakePlayer()
        service = SpeechService(player)
        service.speak("one", "m1")
        service.speak("two", "m2")
        self.assertTrue(player.handles[0].released)
        self.assertFalse(player.handles[1].released)
        self.assertFalse(service.is_speaking("m1"))
        self.assertTrue(service.is_speaking("m2"))

    @patch("surrogateagent.services.speech.requests.get")
    def test_handle_installed_during_fetch_is_released(self, mock_get):
        player = _FakePlayer()
        service = SpeechService(player)
        nested = []

        def fetch(url, **kwargs):
            if not nested:
                nested.append(True)
                service.speak("two", "m2")
            return _audio_response()

        mock_get.side_effect = fetch
        service.speak("one", "m1")

        self.assertEqual(len(player.handles), 2)
        self.assertTrue(player.handles[0].released)
        self.assertFalse(player.handles[1].released)
        self.assertTrue(service.is_speaking("m1"))

    @patch("surrogateagent.services.speech.requests.get")
    def test_finish_callback_clears_state_and_calls_through(self, mock_get):
        mock_get.return_value = _audio_response()
        player = _FakePlayer()
        finished = []
        service = SpeechService(player)
        service.speak("one", "m1", on_finish=lambda: finished.append("m1"))
        player.callbacks[0]()
        self.assertEqual(finished, ["m1"])
        self.assertFalse(service.is_speaking())

    @patch("surrogateagent.services.speech.requests.get")
    def test_context_manager_releases_on_exit(self, mock_get):
        mock_get.return_value = _audio_response()
        player = _FakePlayer()
        with SpeechService(player) as service:
            service.speak("one", "m1")
        self.assertTrue(player.handles[0].stopped)
        self.assertTrue(player.handles[0].released)


class BufferedAudioPlayerTests(unittest.TestCase):
    def test_drain_returns_latest_audio_once_and_fires_callback(self):
        player = BufferedAudioPlayer()
        finished = []
        player.play(b"old", None)
        player.play(b"new", lambda: finished.append(True))
        self.assertEqual(player.drain(), b"new")
        self.assertEqual(finished, [True])
        self.assertIsNone(player.drain())

    def test_releasing_stale_handle_keeps_newer_audio(self):
        player = BufferedAudioPlayer()
        stale = player.play(b"old", None)
        player.play(b"new", None)
        stale.release()
        self.assertEqual(player.drain(), b"new")


if __name__ == "__main__":
    unittest.main()
