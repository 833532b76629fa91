"""
Config loader that exposes a dict-like `settings` object.

It loads values from `settings.json` (JSON or JSONC) next to this file, merges
them over DEFAULTS and finally applies environment overrides (the SMTP/email
variable names match the ones the original deployment used). Supports:
- Trailing inline `//` comments and `/* ... */` block comments
- Numeric literals with underscores, e.g. 10_000

Usage:
    from config import settings
    settings["port"]
    settings.get("email_notifications", False)
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple


SETTINGS_PATH = Path(__file__).with_name("settings.json")
FALLBACK_SENDER = "messagecaller@example.com"

log = logging.getLogger("messagecaller.config")


def _strip_jsonc(text: str) -> str:
    """Remove JSONC comments and numeric underscores to make it JSON-safe."""
    # Remove /* block */ comments
    text = re.sub(r"/\*.*?\*/", "", text, flags=re.S)
    # Remove // line comments that are not part of a URL ("http://...")
    text = re.sub(r"(?<!:)//.*", "", text)
    # Remove underscores within numeric literals (e.g., 10_000 -> 10000)
    text = re.sub(r"(?<=\d)_(?=\d)", "", text)
    return text


def _read_settings_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    raw = path.read_text(encoding="utf-8")
    cleaned = _strip_jsonc(raw)
    try:
        return json.loads(cleaned or "{}")
    except json.JSONDecodeError as exc:
        # Fall back to empty; callers still get DEFAULTS.
        log.warning("Ignoring unreadable %s: %s", path, exc)
        return {}


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


DEFAULTS: Dict[str, Any] = {
    "host": "0.0.0.0",
    "port": 3000,
    "cors_origins": ["*"],
    "log_level": "INFO",
    # Email notifications for new messages (recipient must have an email address)
    "email_notifications": False,
    "smtp_host": "smtp.gmail.com",
    "smtp_port": 587,
    "smtp_user": "",
    "smtp_password": "",
    "smtp_starttls": True,
    "smtp_timeout_secs": 10,
    "email_from": "",
}

# env var -> (settings key, converter)
ENV_OVERRIDES: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "BIND_HOST": ("host", str),
    "PORT": ("port", int),
    "LOG_LEVEL": ("log_level", str),
    "SMTP_HOST": ("smtp_host", str),
    "SMTP_PORT": ("smtp_port", int),
    "EMAIL_USER": ("smtp_user", str),
    "EMAIL_PASS": ("smtp_password", str),
    "EMAIL_FROM": ("email_from", str),
    "EMAIL_NOTIFICATIONS": ("email_notifications", _as_bool),
}


def _env_settings(environ: Mapping[str, str]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for var, (key, convert) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value is None or value == "":
            continue
        try:
            out[key] = convert(value)
        except ValueError:
            log.warning("Ignoring invalid %s=%r", var, value)
    return out


def _merged_settings(path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    data = _read_settings_file(path or SETTINGS_PATH)
    out = DEFAULTS.copy()
    out.update(data)
    out.update(_env_settings(os.environ if environ is None else environ))
    # sender address falls back to the SMTP login
    if not out.get("email_from"):
        out["email_from"] = out.get("smtp_user") or FALLBACK_SENDER
    return out


class _Settings(dict):
    """Dict subclass with a handy reload() and attribute access."""

    def __getattr__(self, key: str) -> Any:  # settings.key support
        try:
            return self[key]
        except KeyError as exc:
            raise AttributeError(key) from exc

    def reload(self) -> None:
        self.clear()
        self.update(_merged_settings())


# Public settings object
settings = _Settings(_merged_settings())
