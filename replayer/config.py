"""Configuration loader for the replay runtime."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional


DEFAULTS: Dict[str, Any] = {
    "resolve_timeout_ms": 3000,
    "action_timeout_ms": 5000,
    "upload_timeout_ms": 10000,
    "drag_timeout_ms": 10000,
    "load_state_timeout_ms": 10000,
    "idle_timeout_ms": 10000,
    "idle_window_ms": 500,
    "idle_poll_ms": 100,
    "inter_action_delay_ms": 100,
    "page_wait_timeout_ms": 5000,
    "min_window_width": 800,
    "min_window_height": 600,
    "default_window_width": 1366,
    "default_window_height": 768,
    "resize_settle_ms": 300,
    "headless": False,
    "log_root": "runs",
    "tracking_script": None,
    "api_base_url": None,
    "api_token": None,
    "api_timeout_s": 30.0,
}

_INT_KEYS = (
    "resolve_timeout_ms",
    "action_timeout_ms",
    "upload_timeout_ms",
    "drag_timeout_ms",
    "load_state_timeout_ms",
    "idle_timeout_ms",
    "idle_window_ms",
    "idle_poll_ms",
    "inter_action_delay_ms",
    "page_wait_timeout_ms",
    "min_window_width",
    "min_window_height",
    "default_window_width",
    "default_window_height",
    "resize_settle_ms",
)


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(slots=True)
class ReplayConfig:
    resolve_timeout_ms: int = DEFAULTS["resolve_timeout_ms"]
    action_timeout_ms: int = DEFAULTS["action_timeout_ms"]
    upload_timeout_ms: int = DEFAULTS["upload_timeout_ms"]
    drag_timeout_ms: int = DEFAULTS["drag_timeout_ms"]
    load_state_timeout_ms: int = DEFAULTS["load_state_timeout_ms"]
    idle_timeout_ms: int = DEFAULTS["idle_timeout_ms"]
    idle_window_ms: int = DEFAULTS["idle_window_ms"]
    idle_poll_ms: int = DEFAULTS["idle_poll_ms"]
    inter_action_delay_ms: int = DEFAULTS["inter_action_delay_ms"]
    page_wait_timeout_ms: int = DEFAULTS["page_wait_timeout_ms"]
    min_window_width: int = DEFAULTS["min_window_width"]
    min_window_height: int = DEFAULTS["min_window_height"]
    default_window_width: int = DEFAULTS["default_window_width"]
    default_window_height: int = DEFAULTS["default_window_height"]
    resize_settle_ms: int = DEFAULTS["resize_settle_ms"]
    headless: bool = DEFAULTS["headless"]
    log_root: Path = field(default_factory=lambda: Path(DEFAULTS["log_root"]))
    tracking_script: Optional[Path] = None
    api_base_url: Optional[str] = None
    api_token: Optional[str] = None
    api_timeout_s: float = DEFAULTS["api_timeout_s"]

    @classmethod
    def from_mapping(cls, mapping: Dict[str, Any]) -> "ReplayConfig":
        data = dict(DEFAULTS)
        data.update(mapping)
        tracking_script = _optional_str(data["tracking_script"])
        ints = {key: int(data[key]) for key in _INT_KEYS}
        return cls(
            **ints,
            headless=bool(str(data["headless"]).lower() in {"true", "1", "yes"}),
            log_root=Path(data["log_root"]),
            tracking_script=Path(tracking_script) if tracking_script else None,
            api_base_url=_optional_str(data["api_base_url"]),
            api_token=_optional_str(data["api_token"]),
            api_timeout_s=float(data["api_timeout_s"]),
        )


def _load_toml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("rb") as fh:
        return tomllib.load(fh)


def load_config(config_path: Path | None = None) -> ReplayConfig:
    """Load configuration from environment, optional TOML file, and defaults."""

    env_map: Dict[str, Any] = {}
    for key, value in os.environ.items():
        if key.startswith("REPLAY_"):
            env_map[key[7:].lower()] = value

    file_map: Dict[str, Any] = {}
    path = config_path or Path("config.toml")
    if path.exists():
        file_map = _load_toml(path).get("replay", {})

    merged = {**file_map, **env_map}
    merged = {key: value for key, value in merged.items() if key in DEFAULTS}
    return ReplayConfig.from_mapping(merged)


def ensure_run_directories(run_id: str, config: ReplayConfig) -> Dict[str, Path]:
    base = config.log_root / run_id
    base.mkdir(parents=True, exist_ok=True)
    return {"base": base, "events": base / "events.jsonl"}
