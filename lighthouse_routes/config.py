"""
Configuration for route audits.

Two layers:
- Environment (.env via python-dotenv) for machine-level defaults
- routes.config.json for the routes and thresholds of a project

Environment variables:
    LIGHTHOUSE_REPORT_DIR   default report directory (./lighthouse-reports)
    LIGHTHOUSE_AUTH_FILE    default cookie export for authenticated routes
    LIGHTHOUSE_CONCURRENCY  default number of routes audited at once (1)
    LIGHTHOUSE_HEADLESS     run Chromium headless (true)
    LIGHTHOUSE_BIN          Lighthouse executable (lighthouse)

Usage:
    from lighthouse_routes.config import load_config

    config = load_config("routes.config.json")
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

from lighthouse_routes.errors import ConfigError
from lighthouse_routes.models import CATEGORIES, Route, Viewport


load_dotenv()

DEFAULT_REPORT_DIR = "./lighthouse-reports"
DEFAULT_TIMEOUT_MS = 180000
DEFAULT_VIEWPORT_WIDTH = 1280
DEFAULT_VIEWPORT_HEIGHT = 720

EXAMPLE_CONFIG = """{
  "baseUrl": "https://example.com",
  "routes": [
    { "name": "home", "path": "/", "authenticated": false }
  ]
}"""


def env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"Environment variable {name} must be an integer. Got: {value!r}")


@dataclass
class AuditConfig:
    """Resolved configuration handed to the orchestrator."""
    base_url: str
    routes: List[Route]
    global_thresholds: Optional[Dict[str, int]] = None
    report_dir: str = DEFAULT_REPORT_DIR
    auth_file: Optional[str] = None
    viewport_width: int = DEFAULT_VIEWPORT_WIDTH
    viewport_height: int = DEFAULT_VIEWPORT_HEIGHT
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    verbose: bool = False
    concurrency: int = 1
    headless: bool = True

    @property
    def viewport(self) -> Viewport:
        return Viewport(self.viewport_width, self.viewport_height)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditConfig":
        """Build from an already-validated routes.config.json mapping, applying defaults."""
        global_thresholds = data.get("globalThresholds")
        return cls(
            base_url=data["baseUrl"],
            routes=[Route.from_dict(r) for r in data["routes"]],
            global_thresholds=dict(global_thresholds) if global_thresholds else None,
            report_dir=data.get("reportDir") or os.getenv("LIGHTHOUSE_REPORT_DIR", DEFAULT_REPORT_DIR),
            auth_file=data.get("authFile") or os.getenv("LIGHTHOUSE_AUTH_FILE") or None,
            viewport_width=data.get("viewportWidth", DEFAULT_VIEWPORT_WIDTH),
            viewport_height=data.get("viewportHeight", DEFAULT_VIEWPORT_HEIGHT),
            timeout_ms=data.get("timeout", DEFAULT_TIMEOUT_MS),
            verbose=bool(data.get("verbose", False)),
            concurrency=data.get("concurrency") or env_int("LIGHTHOUSE_CONCURRENCY", 1),
            headless=env_bool("LIGHTHOUSE_HEADLESS", True),
        )


def validate_thresholds(thresholds: Any, context: str) -> None:
    if not isinstance(thresholds, dict):
        raise ConfigError(f"Thresholds in {context} must be an object")

    for key, value in thresholds.items():
        if key not in CATEGORIES:
            raise ConfigError(
                f"Invalid threshold key \"{key}\" in {context}. Valid keys are: {', '.join(CATEGORIES)}"
            )
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0 or value > 100:
            raise ConfigError(f"Threshold \"{key}\" in {context} must be a number between 0-100. Got: {value}")


def validate_config(config: Any) -> None:
    """
    Check the shape of a parsed routes.config.json.

    Raises:
        ConfigError: on the first problem found
    """
    if not isinstance(config, dict):
        raise ConfigError("Config must be an object")

    base_url = config.get("baseUrl")
    if not base_url or not isinstance(base_url, str):
        raise ConfigError("Config must have baseUrl (string)")

    parsed = urlparse(base_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(
            f"Invalid baseUrl: \"{base_url}\" is not a valid URL. Expected format: https://example.com"
        )

    routes = config.get("routes")
    if not isinstance(routes, list) or not routes:
        raise ConfigError("Config must have routes array with at least one route")

    seen = set()
    for route in routes:
        if not isinstance(route, dict):
            raise ConfigError(f"Route must be an object. Got: {json.dumps(route)}")
        name = route.get("name")
        if not name or not isinstance(name, str):
            raise ConfigError(f"Route must have a name (string). Got: {json.dumps(route)}")
        path = route.get("path")
        if not path or not isinstance(path, str):
            raise ConfigError(f"Route must have a path (string). Got: {json.dumps(route)}")
        if not path.startswith("/"):
            raise ConfigError(f"Route path must start with \"/\". Got: \"{path}\". Did you mean \"/{path}\"?")
        if name in seen:
            raise ConfigError(f"Duplicate route name \"{name}\". Route names are used as report file names")
        seen.add(name)
        if route.get("thresholds"):
            validate_thresholds(route["thresholds"], f"route \"{name}\"")

    if config.get("globalThresholds"):
        validate_thresholds(config["globalThresholds"], "globalThresholds")

    concurrency = config.get("concurrency")
    if concurrency is not None and (not isinstance(concurrency, int) or concurrency < 1):
        raise ConfigError(f"concurrency must be a positive integer. Got: {concurrency}")


def load_config(config_path: str) -> AuditConfig:
    """
    Load, validate and default a routes.config.json file.

    Raises:
        ConfigError: file missing, invalid JSON, or validation failure
    """
    path = Path(config_path).expanduser().resolve()

    if not path.exists():
        raise ConfigError(
            f"Config file not found: {path}\n"
            f"Create a routes.config.json file in your project root with the following structure:\n"
            f"{EXAMPLE_CONFIG}"
        )

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigError(f"Failed to parse config file at {path}. Make sure the file is valid JSON", cause=e) from e

    validate_config(data)
    return AuditConfig.from_dict(data)
