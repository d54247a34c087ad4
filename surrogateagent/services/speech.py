from __future__ import annotations

import re
import threading
from dataclasses import dataclass
from typing import Callable, Protocol
from urllib import parse as urlparse

import requests
import structlog

from surrogateagent.config import Settings
from surrogateagent.errors import SpeechSynthesisError
from .fallback import FallbackResolver, ProviderAttempt
from .market_data import DEFAULT_USER_AGENT

logger = structlog.get_logger()

GOOGLE_TTS_URL = "https://translate.google.com/translate_tts"
EDGE_TTS_PROXY_URL = "https://convert.rocks/api/edge-tts"
ALTERNATE_MAX_CHARS = 200

_SYMBOLS = re.compile("[™®©]")
_NON_ALNUM = re.compile(r"[^a-zA-Z0-9\s]")

FinishCallback = Callable[[], None]


class PlaybackHandle(Protocol):
    def stop(self) -> None:
        ...

    def release(self) -> None:
        ...


class AudioPlayer(Protocol):
    def play(self, audio: bytes, on_finish: FinishCallback | None) -> PlaybackHandle:
        ...


class _BufferedHandle:
    def __init__(self, player: "BufferedAudioPlayer", token: int) -> None:
        self._player = player
        self._token = token

    def stop(self) -> None:
        self._player.discard(self._token)

    def release(self) -> None:
        self._player.discard(self._token)


class BufferedAudioPlayer:
    """Keeps the most recent clip in memory until a caller drains it.

    Draining counts as playback completion and fires the finish callback.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._token = 0
        self._audio: bytes | None = None
        self._on_finish: FinishCallback | None = None

    def play(self, audio: bytes, on_finish: FinishCallback | None) -> PlaybackHandle:
        with self._lock:
            self._token += 1
            self._audio = audio
            self._on_finish = on_finish
            return _BufferedHandle(self, self._token)

    def discard(self, token: int) -> None:
        with self._lock:
            if token == self._token:
                self._audio = None
                self._on_finish = None

    def drain(self) -> bytes | None:
        with self._lock:
            audio, on_finish = self._audio, self._on_finish
            self._audio = None
            self._on_finish = None
        if on_finish is not None:
            on_finish()
        return audio


@dataclass(frozen=True)
class SpeechEndpoint:
    name: str
    url: str


@dataclass(frozen=True)
class SpeechResult:
    message_id: str
    provider: str
    audio_bytes: int


@dataclass(frozen=True)
class _Playback:
    provider: str
    audio_bytes: int
    handle: PlaybackHandle


def prepare_speech_text(text: str, max_chars: int) -> str:
    clipped = text if len(text) <= max_chars else text[:max_chars] + "..."
    return _SYMBOLS.sub("", clipped).strip()


def speech_endpoints(text: str, edge_voice: str, language: str = "en") -> list[SpeechEndpoint]:
    alternate_text = _NON_ALNUM.sub(" ", text).strip()[:ALTERNATE_MAX_CHARS]
    return [
        SpeechEndpoint(
            name="google_tts",
            url=GOOGLE_TTS_URL
            + "?"
            + urlparse.urlencode({"ie": "UTF-8", "q": text, "tl": language, "client": "tw-ob"}),
        ),
        SpeechEndpoint(
            name="google_tts_alternate",
            url=GOOGLE_TTS_URL
            + "?"
            + urlparse.urlencode(
                {"ie": "UTF-8", "q": alternate_text, "tl": language, "client": "gtx", "prev": "input"}
            ),
        ),
        SpeechEndpoint(
            name="edge_tts",
            url=EDGE_TTS_PROXY_URL + "?" + urlparse.urlencode({"text": text, "voice": edge_voice}),
        ),
    ]


class SpeechService:
    def __init__(
        self,
        player: AudioPlayer,
        *,
        timeout_seconds: int = 10,
        max_chars: int = 250,
        edge_voice: str = "en-US-AriaNeural",
    ) -> None:
        self.player = player
        self.timeout_seconds = max(1, timeout_seconds)
        self.max_chars = max(1, max_chars)
        self.edge_voice = edge_voice
        self._lock = threading.RLock()
        self._handle: PlaybackHandle | None = None
        self._speaking_id: str | None = None
        self._log = logger.bind(component="speech")

    @classmethod
    def from_settings(cls, cfg: Settings, player: AudioPlayer) -> "SpeechService":
        return cls(
            player,
            timeout_seconds=cfg.tts_timeout_seconds,
            max_chars=cfg.tts_max_chars,
            edge_voice=cfg.tts_edge_voice,
        )

    def __enter__(self) -> "SpeechService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def speak(
        self,
        text: str,
        message_id: str,
        on_finish: FinishCallback | None = None,
    ) -> SpeechResult:
        with self._lock:
            self._release_current()
            self._speaking_id = message_id

        prepared = prepare_speech_text(text, self.max_chars)
        finish = self._finish_callback(message_id, on_finish)
        attempts = [
            ProviderAttempt(
                name=endpoint.name,
                fetch=lambda endpoint=endpoint: self._play(endpoint, finish),
            )
            for endpoint in speech_endpoints(prepared, self.edge_voice)
        ]
        outcome = FallbackResolver("speech", attempts).resolve()
        playback = outcome.value

        with self._lock:
            if playback is None:
                if self._speaking_id == message_id:
                    self._speaking_id = None
                raise SpeechSynthesisError(
                    "All TTS providers failed: " + "; ".join(outcome.errors[-3:])
                )
            # Another speak may have installed a handle while this one was fetching.
            self._release_current()
            self._handle = playback.handle
            self._speaking_id = message_id

        self._log.info(
            "speech.playback_started",
            message_id=message_id,
            provider=playback.provider,
            text_chars=len(prepared),
        )
        return SpeechResult(
            message_id=message_id,
            provider=playback.provider,
            audio_bytes=playback.audio_bytes,
        )

    def stop(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.stop()
            self._release_current()
            self._speaking_id = None

    def close(self) -> None:
        self.stop()

    def is_speaking(self, message_id: str | None = None) -> bool:
        with self._lock:
            if message_id is not None:
                return self._speaking_id == message_id
            return self._speaking_id is not None

    def _play(self, endpoint: SpeechEndpoint, finish: FinishCallback) -> _Playback | None:
        response = requests.get(
            endpoint.url,
            headers={"User-Agent": DEFAULT_USER_AGENT},
            timeout=self.timeout_seconds,
        )
        if not response.ok:
            raise RuntimeError(f"{endpoint.name} failed ({response.status_code})")
        audio = response.content
        if not audio:
            return None
        handle = self.player.play(audio, finish)
        return _Playback(provider=endpoint.name, audio_bytes=len(audio), handle=handle)

    def _finish_callback(self, message_id: str, on_finish: FinishCallback | None) -> FinishCallback:
        def _finished() -> None:
            with self._lock:
                if self._speaking_id == message_id:
                    self._speaking_id = None
            if on_finish is not None:
                on_finish()

        return _finished

    def _release_current(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.release()
