import os
import dotenv
import logging
from pathlib import Path

dotenv.load_dotenv()


class ConfigError(Exception):
    pass


def _optional_int(name):
    value = os.environ.get(name)
    return int(value) if value else None


def _optional_float(name):
    value = os.environ.get(name)
    return float(value) if value else None


GITHUB_APP_ID = _optional_int("GITHUB_APP_ID")
GITHUB_CLIENT_ID = os.environ.get("GITHUB_CLIENT_ID")
GITHUB_CLIENT_SECRET = os.environ.get("GITHUB_CLIENT_SECRET")
GITHUB_PRIVATE_KEY_PATH = os.environ.get("GITHUB_PRIVATE_KEY_PATH")
GITHUB_WEBHOOK_SECRET = os.environ.get("GITHUB_WEBHOOK_SECRET")

GITHUB_PRIVATE_KEY = None
if GITHUB_PRIVATE_KEY_PATH is not None and Path(GITHUB_PRIVATE_KEY_PATH).exists():
    GITHUB_PRIVATE_KEY = Path(GITHUB_PRIVATE_KEY_PATH).read_text()

BASE_BRANCH = os.environ.get("BASE_BRANCH") or "master"

DEBUG = os.environ.get("DEBUG", "") not in ("", "0", "false")

OVERRIDE_LOGGING = logging.getLevelName(os.environ.get("OVERRIDE_LOGGING", "INFO"))

TELEGRAM_TOKEN = os.environ.get("TELEGRAM_TOKEN")
TELEGRAM_CHAT_ID = os.environ.get("TELEGRAM_CHAT_ID")

PUSH_HOST = os.environ.get("PUSH_HOST", "github.com")

PAYLOAD_PATH = os.environ.get("PAYLOAD_PATH", "payload.json")

TOOLCHAIN_COMMAND = os.environ.get(
    "TOOLCHAIN_COMMAND", "rustup show active-toolchain --verbose"
)

BENCH_BRANCH_COMMAND = os.environ.get(
    "BENCH_BRANCH_COMMAND", "cargo bench --quiet {extra}"
)
BENCH_RUNTIME_COMMAND = os.environ.get(
    "BENCH_RUNTIME_COMMAND",
    "cargo run --release --features runtime-benchmarks -- benchmark {action} {extra}",
)

# seconds, unset means no deadline on the benchmark call
DELEGATE_TIMEOUT = _optional_float("DELEGATE_TIMEOUT")

ACCESS_TOKEN_TTL = float(os.environ.get("ACCESS_TOKEN_TTL", 300))


def check_required() -> None:
    missing = [
        name
        for name, value in (
            ("GITHUB_APP_ID", GITHUB_APP_ID),
            ("GITHUB_CLIENT_ID", GITHUB_CLIENT_ID),
            ("GITHUB_CLIENT_SECRET", GITHUB_CLIENT_SECRET),
            ("GITHUB_PRIVATE_KEY_PATH", GITHUB_PRIVATE_KEY_PATH),
        )
        if not value
    ]
    if missing:
        raise ConfigError(f"Missing required configuration: {', '.join(missing)}")

    if not GITHUB_PRIVATE_KEY:
        raise ConfigError(
            f"Could not read private key from {GITHUB_PRIVATE_KEY_PATH}"
        )
