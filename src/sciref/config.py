"""Environment variable configuration for sciref.

API keys are loaded in priority order:
  1. Shell environment variables (highest priority)
  2. .env file in current directory
  3. ~/.sciref/.env (persistent config, set via `sciref env set`)

Run `sciref env` to see which keys are configured.
Run `sciref env set KEY value` to save a key persistently.

Required keys per model family:
    gemini-*           ->  GEMINI_API_KEY (API_KEY is accepted as a fallback)
    any other model    ->  OPENAI_API_KEY (OPENAI_BASE_URL for compatible gateways)
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Persistent config location
SCIREF_DIR = Path.home() / ".sciref"
PERSISTENT_ENV = SCIREF_DIR / ".env"

# Load in reverse priority order (later loads don't overwrite existing)
if PERSISTENT_ENV.exists():
    load_dotenv(PERSISTENT_ENV)

load_dotenv()

DEFAULT_VERIFY_MODEL = "gemini-2.5-flash"


# --- Persistent config ---

def save_key(name: str, value: str) -> Path:
    """Save a setting to ~/.sciref/.env for persistent use."""
    SCIREF_DIR.mkdir(parents=True, exist_ok=True)

    # Read existing entries
    lines: list[str] = []
    replaced = False
    if PERSISTENT_ENV.exists():
        for line in PERSISTENT_ENV.read_text().splitlines():
            if line.startswith(f"{name}="):
                lines.append(f"{name}={value}")
                replaced = True
            else:
                lines.append(line)

    if not replaced:
        lines.append(f"{name}={value}")

    PERSISTENT_ENV.write_text("\n".join(lines) + "\n")

    # Also set in current process
    os.environ[name] = value

    return PERSISTENT_ENV


# --- Accessors ---

def get_gemini_key() -> str:
    key = (os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or "").strip()
    if not key:
        raise ValueError(
            "GEMINI_API_KEY is not set. "
            "Run `sciref env set GEMINI_API_KEY <your-key>` to configure it."
        )
    return key


def get_openai_key() -> str:
    key = os.getenv("OPENAI_API_KEY", "").strip()
    if not key:
        raise ValueError(
            "OPENAI_API_KEY is not set. "
            "Run `sciref env set OPENAI_API_KEY <your-key>` to configure it."
        )
    return key


def get_openai_base_url() -> str | None:
    """Base URL is optional; returns None to use the default OpenAI endpoint."""
    return os.getenv("OPENAI_BASE_URL") or None


def get_verify_model() -> str:
    return os.getenv("SCIREF_VERIFY_MODEL") or DEFAULT_VERIFY_MODEL


def get_timeout() -> float:
    try:
        return float(os.getenv("API_TIMEOUT", "60"))
    except ValueError:
        return 60.0


# --- Status check ---

VALID_KEYS = {
    "GEMINI_API_KEY",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "SCIREF_VERIFY_MODEL",
    "API_TIMEOUT",
}

ENV_VARS = {
    "GEMINI_API_KEY": {
        "required_by": ["gemini-* models", "verification pass (default)"],
        "description": "Google Gemini API with Google Search grounding",
    },
    "OPENAI_API_KEY": {
        "required_by": ["non-gemini models"],
        "description": "OpenAI or any OpenAI-compatible chat completions API",
    },
    "OPENAI_BASE_URL": {
        "required_by": ["non-gemini models (optional)"],
        "description": "Base URL of an OpenAI-compatible gateway",
    },
    "SCIREF_VERIFY_MODEL": {
        "required_by": ["verification pass (optional)"],
        "description": f"Model used to confirm references (default: {DEFAULT_VERIFY_MODEL})",
    },
}


def check_env() -> list[tuple[str, bool, dict]]:
    """Return list of (var_name, is_set, info) for all known env vars."""
    result = []
    for var, info in ENV_VARS.items():
        is_set = bool(os.getenv(var))
        if var == "GEMINI_API_KEY" and not is_set:
            is_set = bool(os.getenv("API_KEY"))
        result.append((var, is_set, info))
    return result
