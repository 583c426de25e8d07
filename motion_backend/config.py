# motion_backend/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv


@dataclass
class SessionSettings:
    ttl_s: float = 120.0             # sweep removes sessions idle longer than this
    read_ttl_s: float = 60.0         # polling reads degrade to center after this
    sweep_interval_s: float = 120.0
    sweep_autostart: bool = True     # start the background sweeper in create_app
    max_sessions: int = 500
    token_length: int = 8
    token_alphabet: str = "clear"    # "clear" | "numeric"
    token_attempts: int = 10
    debounce_s: float = 0.020

    @classmethod
    def from_cfg(cls, cfg: dict) -> "SessionSettings":
        sc = cfg.get("session", {}) or {}
        return cls(
            ttl_s=float(sc.get("ttl_s", cls.ttl_s)),
            read_ttl_s=float(sc.get("read_ttl_s", cls.read_ttl_s)),
            sweep_interval_s=float(sc.get("sweep_interval_s", cls.sweep_interval_s)),
            sweep_autostart=bool(sc.get("sweep_autostart", cls.sweep_autostart)),
            max_sessions=int(sc.get("max_sessions", cls.max_sessions)),
            token_length=int(sc.get("token_length", cls.token_length)),
            token_alphabet=str(sc.get("token_alphabet", cls.token_alphabet)),
            token_attempts=int(sc.get("token_attempts", cls.token_attempts)),
            debounce_s=float(sc.get("debounce_s", cls.debounce_s)),
        )


@dataclass
class SmoothingSettings:
    window: int = 3
    policy: str = "weighted"         # "weighted" | "simple"
    outlier_guard: bool = True
    outlier_threshold: float = 5.0
    outlier_blend: float = 0.4       # share of the raw value kept when blending a spike

    @classmethod
    def from_cfg(cls, cfg: dict) -> "SmoothingSettings":
        sc = cfg.get("smoothing", {}) or {}
        return cls(
            window=int(sc.get("window", cls.window)),
            policy=str(sc.get("policy", cls.policy)),
            outlier_guard=bool(sc.get("outlier_guard", cls.outlier_guard)),
            outlier_threshold=float(sc.get("outlier_threshold", cls.outlier_threshold)),
            outlier_blend=float(sc.get("outlier_blend", cls.outlier_blend)),
        )


@dataclass
class MappingSettings:
    sensitivity: float = 0.8
    axis_bound: int = 5
    scale_range: float = 10.0
    curve: str = "linear"            # "linear" | "sqrt"
    sanity_bound: float = 20.0

    @classmethod
    def from_cfg(cls, cfg: dict) -> "MappingSettings":
        mc = cfg.get("mapping", {}) or {}
        return cls(
            sensitivity=float(mc.get("sensitivity", cls.sensitivity)),
            axis_bound=int(mc.get("axis_bound", cls.axis_bound)),
            scale_range=float(mc.get("scale_range", cls.scale_range)),
            curve=str(mc.get("curve", cls.curve)),
            sanity_bound=float(mc.get("sanity_bound", cls.sanity_bound)),
        )


@dataclass
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    @classmethod
    def from_cfg(cls, cfg: dict) -> "ServerSettings":
        sc = cfg.get("server", {}) or {}
        return cls(
            host=str(sc.get("host", cls.host)),
            port=int(os.getenv("PORT", sc.get("port", cls.port))),
            log_level=str(os.getenv("LOG_LEVEL", sc.get("log_level", cls.log_level))).upper(),
        )


@dataclass
class Settings:
    server: ServerSettings = field(default_factory=ServerSettings)
    session: SessionSettings = field(default_factory=SessionSettings)
    smoothing: SmoothingSettings = field(default_factory=SmoothingSettings)
    mapping: MappingSettings = field(default_factory=MappingSettings)

    @classmethod
    def from_cfg(cls, cfg: Optional[Dict[str, Any]]) -> "Settings":
        cfg = cfg or {}
        return cls(
            server=ServerSettings.from_cfg(cfg),
            session=SessionSettings.from_cfg(cfg),
            smoothing=SmoothingSettings.from_cfg(cfg),
            mapping=MappingSettings.from_cfg(cfg),
        )


def load_settings(path: Union[str, Path, None] = None) -> Settings:
    """
    Read settings.yaml (if present) on top of the built-in defaults.
    A .env file next to the working directory is loaded first so PORT and
    LOG_LEVEL can be overridden without touching the YAML.
    """
    load_dotenv()
    cfg: Dict[str, Any] = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p, "r", encoding="utf-8") as f:
                cfg = yaml.safe_load(f) or {}
    return Settings.from_cfg(cfg)
