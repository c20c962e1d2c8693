"""Settings resolved from the environment with sane defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass

from . import constants


def _parse_env_list(env_name: str, default: list[str]) -> tuple[str, ...]:
    raw = os.getenv(env_name)
    if not raw:
        return tuple(default)
    tokens = [token.strip().lower() for token in raw.split(",") if token.strip()]
    return tuple(tokens) if tokens else tuple(default)


def _get_env_str(env_name: str, default: str) -> str:
    raw = os.getenv(env_name)
    if raw is None:
        return default
    return raw


def _get_env_alias(env_names: tuple[str, ...], default: str) -> str:
    for env_name in env_names:
        raw = os.getenv(env_name)
        if raw is not None and raw != "":
            return raw
    return default


def _parse_env_int(env_name: str, default: int) -> int:
    raw = os.getenv(env_name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_env_float(env_name: str, default: float) -> float:
    raw = os.getenv(env_name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _read_file_trimmed(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            return handle.read().strip()
    except OSError as exc:
        raise ValueError(f"unable to read refresh token file {path!r}: {exc}") from exc


def _resolve_refresh_token() -> str:
    env_token = os.getenv("TRINGQR_REFRESH_TOKEN", "").strip()
    file_path = (os.getenv("TRINGQR_REFRESH_TOKEN_FILE") or "").strip()
    if not file_path:
        return env_token
    try:
        token = _read_file_trimmed(file_path)
    except ValueError:
        return env_token
    return token or env_token


@dataclass(frozen=True)
class Settings:
    api_base_url: str
    scan_history_path: str
    scan_append_path: str
    codes_history_path: str
    codes_create_path: str
    platform: str
    scan_event_category: str
    payment_schemes: tuple[str, ...]
    wallet_pay_uri: str
    wallet_store_url: str
    traffic_source_param: str
    traffic_source_value: str
    search_url: str
    cooldown_seconds: float
    resume_delay_seconds: float
    keystore_dir: str
    token_endpoint: str
    api_key: str
    refresh_token: str
    network_workers: int

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_base_url=_get_env_alias(
                ("TRINGQR_API_BASE_URL", "BASE_URL"), constants.DEFAULT_API_BASE_URL
            ),
            scan_history_path=_get_env_str(
                "TRINGQR_SCAN_HISTORY_PATH", constants.DEFAULT_SCAN_HISTORY_PATH
            ),
            scan_append_path=_get_env_str(
                "TRINGQR_SCAN_APPEND_PATH", constants.DEFAULT_SCAN_APPEND_PATH
            ),
            codes_history_path=_get_env_str(
                "TRINGQR_CODES_HISTORY_PATH", constants.DEFAULT_CODES_HISTORY_PATH
            ),
            codes_create_path=_get_env_str(
                "TRINGQR_CODES_CREATE_PATH", constants.DEFAULT_CODES_CREATE_PATH
            ),
            platform=_get_env_str("TRINGQR_PLATFORM", constants.DEFAULT_PLATFORM),
            scan_event_category=_get_env_str(
                "TRINGQR_SCAN_EVENT_CATEGORY", constants.DEFAULT_SCAN_EVENT_CATEGORY
            ),
            payment_schemes=_parse_env_list(
                "TRINGQR_PAYMENT_SCHEMES", constants.DEFAULT_PAYMENT_SCHEMES
            ),
            wallet_pay_uri=_get_env_str(
                "TRINGQR_WALLET_PAY_URI", constants.DEFAULT_WALLET_PAY_URI
            ),
            wallet_store_url=_get_env_str(
                "TRINGQR_WALLET_STORE_URL", constants.DEFAULT_WALLET_STORE_URL
            ),
            traffic_source_param=_get_env_str(
                "TRINGQR_TRAFFIC_SOURCE_PARAM", constants.DEFAULT_TRAFFIC_SOURCE_PARAM
            ),
            traffic_source_value=_get_env_str(
                "TRINGQR_TRAFFIC_SOURCE_VALUE", constants.DEFAULT_TRAFFIC_SOURCE_VALUE
            ),
            search_url=_get_env_str("TRINGQR_SEARCH_URL", constants.DEFAULT_SEARCH_URL),
            cooldown_seconds=_parse_env_float(
                "TRINGQR_COOLDOWN_SECONDS", constants.DEFAULT_COOLDOWN_SECONDS
            ),
            resume_delay_seconds=_parse_env_float(
                "TRINGQR_RESUME_DELAY_SECONDS", constants.DEFAULT_RESUME_DELAY_SECONDS
            ),
            keystore_dir=os.path.expanduser(
                _get_env_alias(
                    ("TRINGQR_KEYSTORE_DIR", "TRINGQR_STATE_DIR"),
                    constants.DEFAULT_KEYSTORE_DIR,
                )
            ),
            token_endpoint=_get_env_str(
                "TRINGQR_TOKEN_ENDPOINT", constants.DEFAULT_TOKEN_ENDPOINT
            ),
            api_key=os.getenv("TRINGQR_API_KEY", ""),
            refresh_token=_resolve_refresh_token(),
            network_workers=_parse_env_int(
                "TRINGQR_NETWORK_WORKERS", constants.DEFAULT_NETWORK_WORKERS
            ),
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


__all__ = ["Settings", "get_settings"]
