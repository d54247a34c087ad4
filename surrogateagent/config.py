import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv(override=False)


def _as_bool(raw: str | None, default: bool) -> bool:
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _as_int(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    llm_provider: str
    llm_api_key: str | None
    llm_api_base_url: str | None
    llm_model: str
    title_llm_model: str
    search_llm_model: str
    analysis_llm_model: str
    llm_timeout_seconds: int
    aux_llm_timeout_seconds: int
    context_turns: int
    timezone: str
    market_data_timeout_seconds: int
    coingecko_api_base_url: str
    yahoo_chart_api_base_url: str
    market_data_api_key: str | None
    search_timeout_seconds: int
    search_reader_base_url: str
    search_min_content_chars: int
    tts_timeout_seconds: int
    tts_max_chars: int
    tts_edge_voice: str
    log_level: str
    log_json: bool


def load_settings() -> Settings:
    llm_model = os.getenv("SURROGATE_LLM_MODEL") or "mistral-large-latest"
    small_model = os.getenv("SURROGATE_TITLE_LLM_MODEL") or "mistral-small-latest"
    return Settings(
        llm_provider=os.getenv("SURROGATE_LLM_PROVIDER", "mistral").strip().lower(),
        llm_api_key=(
            os.getenv("SURROGATE_LLM_API_KEY") or os.getenv("MISTRAL_API_KEY") or None
        ),
        llm_api_base_url=(os.getenv("SURROGATE_LLM_API_BASE_URL") or None),
        llm_model=llm_model,
        title_llm_model=small_model,
        search_llm_model=os.getenv("SURROGATE_SEARCH_LLM_MODEL") or small_model,
        analysis_llm_model=os.getenv("SURROGATE_ANALYSIS_LLM_MODEL") or "open-mistral-7b",
        llm_timeout_seconds=_as_int(os.getenv("SURROGATE_LLM_TIMEOUT_SECONDS"), 30),
        aux_llm_timeout_seconds=_as_int(
            os.getenv("SURROGATE_AUX_LLM_TIMEOUT_SECONDS"), 12
        ),
        context_turns=max(
            1,
            min(200, _as_int(os.getenv("SURROGATE_CONTEXT_TURNS"), 40)),
        ),
        timezone=(os.getenv("SURROGATE_TIMEZONE") or "UTC").strip(),
        market_data_timeout_seconds=_as_int(
            os.getenv("MARKET_DATA_TIMEOUT_SECONDS"), 8
        ),
        coingecko_api_base_url=os.getenv(
            "COINGECKO_API_BASE_URL", "https://api.coingecko.com/api/v3"
        ),
        yahoo_chart_api_base_url=os.getenv(
            "YAHOO_CHART_API_BASE_URL", "https://query1.finance.yahoo.com/v8/finance/chart"
        ),
        market_data_api_key=(os.getenv("MARKET_DATA_API_KEY") or None),
        search_timeout_seconds=_as_int(os.getenv("SEARCH_TIMEOUT_SECONDS"), 10),
        search_reader_base_url=os.getenv("SEARCH_READER_BASE_URL", "https://r.jina.ai"),
        search_min_content_chars=max(
            1, _as_int(os.getenv("SEARCH_MIN_CONTENT_CHARS"), 100)
        ),
        tts_timeout_seconds=_as_int(os.getenv("TTS_TIMEOUT_SECONDS"), 10),
        tts_max_chars=max(20, _as_int(os.getenv("TTS_MAX_CHARS"), 250)),
        tts_edge_voice=os.getenv("TTS_EDGE_VOICE", "en-US-AriaNeural"),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
        log_json=_as_bool(os.getenv("LOG_JSON"), False),
    )


settings = load_settings()
