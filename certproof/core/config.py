from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

from certproof.core.validation import is_address

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]
LedgerBackend = Literal["memory", "web3"]

# Address the first contract deployed on a fresh local Hardhat node gets.
DEV_CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
BASE_SEPOLIA_CHAIN_ID = 84532


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getint(name: str, default: int, *, minimum: int = 0) -> int:
    raw = _getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum} (got {value})")
    return value


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    redis_url: str | None
    ledger_backend: LedgerBackend
    rpc_url: str | None
    chain_id: int
    contract_address: str
    challenge_ttl_seconds: int
    ledger_timeout_seconds: float
    ledger_max_concurrency: int
    course_cache_ttl_seconds: int

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def enforces_challenge_ttl(self) -> bool:
        return self.challenge_ttl_seconds > 0


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    backend_raw = _getenv("LEDGER_BACKEND", "memory").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    if backend_raw not in ("memory", "web3"):
        raise ValueError(f"LEDGER_BACKEND must be memory|web3 (got {backend_raw!r})")

    port = _getint("PORT", 8000, minimum=1)
    rpc_url = _getenv("RPC_URL", "") or None
    if backend_raw == "web3" and rpc_url is None:
        raise ValueError("RPC_URL is required when LEDGER_BACKEND=web3")

    contract_address = _getenv("TRAINING_CERTIFICATION_ADDRESS", "")
    if not contract_address:
        if backend_raw == "web3":
            raise ValueError(
                "TRAINING_CERTIFICATION_ADDRESS is required when LEDGER_BACKEND=web3"
            )
        contract_address = DEV_CONTRACT_ADDRESS
    if not is_address(contract_address):
        raise ValueError(
            "TRAINING_CERTIFICATION_ADDRESS must be a 0x-prefixed 40 hex digit "
            f"address (got {contract_address!r})"
        )

    timeout_raw = _getenv("LEDGER_TIMEOUT_SECONDS", "15")
    try:
        ledger_timeout = float(timeout_raw)
    except ValueError:
        raise ValueError(
            f"LEDGER_TIMEOUT_SECONDS must be a number (got {timeout_raw!r})"
        ) from None
    if ledger_timeout <= 0:
        raise ValueError(f"LEDGER_TIMEOUT_SECONDS must be > 0 (got {ledger_timeout})")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getenv("LOG_JSON", "false").lower() in ("1", "true", "yes"),
        port=port,
        redis_url=_getenv("REDIS_URL", "") or None,
        ledger_backend=backend_raw,
        rpc_url=rpc_url,
        chain_id=_getint("CHAIN_ID", BASE_SEPOLIA_CHAIN_ID, minimum=1),
        contract_address=contract_address,
        challenge_ttl_seconds=_getint("CHALLENGE_TTL_SECONDS", 300),
        ledger_timeout_seconds=ledger_timeout,
        ledger_max_concurrency=_getint("LEDGER_MAX_CONCURRENCY", 8, minimum=1),
        course_cache_ttl_seconds=_getint("COURSE_CACHE_TTL_SECONDS", 300, minimum=1),
    )


SETTINGS = load_settings()
