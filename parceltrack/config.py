"""
ParcelTrack configuration.

Config comes from a YAML file with ``${VAR}`` environment substitution, or,
when no file is given, from environment variables. Either way the result is
a plain dict with defaults filled in:

    database: postgresql://...        # optional, memory stores when absent
    ups:
      client_id: ${UPS_CLIENT_ID}
      client_secret: ${UPS_CLIENT_SECRET}
      base_url: https://onlinetools.ups.com
    usps:
      client_id: ${USPS_CLIENT_ID}
      client_secret: ${USPS_CLIENT_SECRET}
      base_url: https://apis.usps.com
    local:
      latency_seconds: 0.8
      failure_rate: 0.05
      seed: null
    scheduler:
      enabled: true
      interval_seconds: 600
"""

import copy
import logging
import os
import re
from typing import Any, Dict, Optional

import yaml

from .constants import DEFAULT_UPS_BASE_URL, DEFAULT_USPS_BASE_URL, REFRESH_INTERVAL_SECONDS

logger = logging.getLogger(__name__)

DEFAULTS: Dict[str, Any] = {
    "database": None,
    "ups": {"client_id": "", "client_secret": "", "base_url": DEFAULT_UPS_BASE_URL},
    "usps": {"client_id": "", "client_secret": "", "base_url": DEFAULT_USPS_BASE_URL},
    "local": {"latency_seconds": 0.8, "failure_rate": 0.05, "seed": None},
    "scheduler": {"enabled": True, "interval_seconds": REFRESH_INTERVAL_SECONDS},
}

_TRUE_VALUES = ("1", "true", "yes", "on")


def _load_config(path: str) -> dict:
    """Read YAML config file with ${VAR} environment variable substitution."""
    with open(path, "r", encoding="utf-8") as f:
        raw = f.read()

    # Replace ${VAR} with environment variable values
    def _replace_env(match):
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ValueError(
                f"Environment variable '{var_name}' not set "
                f"(referenced in config file '{path}')"
            )
        return value

    resolved = re.sub(r"\$\{(\w+)\}", _replace_env, raw)
    data = yaml.safe_load(resolved)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file '{path}' must contain a mapping")
    return data


def _env_float(name: str) -> Optional[float]:
    value = os.environ.get(name)
    if value in (None, ""):
        return None
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable '{name}' must be a number, got '{value}'")


def config_from_env() -> dict:
    """Build a config dict from environment variables."""
    cfg: Dict[str, Any] = {
        "database": os.environ.get("DATABASE_URL") or None,
        "ups": {
            "client_id": os.environ.get("UPS_CLIENT_ID", ""),
            "client_secret": os.environ.get("UPS_CLIENT_SECRET", ""),
        },
        "usps": {
            "client_id": os.environ.get("USPS_CLIENT_ID", ""),
            "client_secret": os.environ.get("USPS_CLIENT_SECRET", ""),
        },
        "local": {},
        "scheduler": {},
    }

    if os.environ.get("UPS_BASE_URL"):
        cfg["ups"]["base_url"] = os.environ["UPS_BASE_URL"]
    if os.environ.get("USPS_BASE_URL"):
        cfg["usps"]["base_url"] = os.environ["USPS_BASE_URL"]

    latency = _env_float("LOCAL_LATENCY_SECONDS")
    if latency is not None:
        cfg["local"]["latency_seconds"] = latency
    failure_rate = _env_float("LOCAL_FAILURE_RATE")
    if failure_rate is not None:
        cfg["local"]["failure_rate"] = failure_rate
    seed = _env_float("LOCAL_SEED")
    if seed is not None:
        cfg["local"]["seed"] = int(seed)

    if os.environ.get("SCHEDULER_ENABLED"):
        cfg["scheduler"]["enabled"] = os.environ["SCHEDULER_ENABLED"].lower() in _TRUE_VALUES
    interval = _env_float("REFRESH_INTERVAL_SECONDS")
    if interval is not None:
        cfg["scheduler"]["interval_seconds"] = interval

    return cfg


def with_defaults(cfg: dict) -> dict:
    """Fill in missing sections and keys from DEFAULTS."""
    merged = copy.deepcopy(DEFAULTS)
    for key, value in (cfg or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key].update({k: v for k, v in value.items() if v is not None or k == "seed"})
        elif value is not None:
            merged[key] = value
    return merged


def load_config(path: Optional[str] = None) -> dict:
    """Load config from ``path`` if given, otherwise from the environment."""
    if path:
        logger.info(f"Loading config from {path}")
        return with_defaults(_load_config(path))
    return with_defaults(config_from_env())
