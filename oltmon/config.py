"""Application configuration: YAML file plus environment overrides."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from loguru import logger
from pydantic import BaseModel, Field, ValidationError, model_validator

from oltmon.exceptions import ConfigError

DEFAULT_CONFIG_PATH = "config.yaml"


class SnmpSettings(BaseModel):
    """SNMP v2c target of the OLT."""

    host: str = "127.0.0.1"
    port: int = 161
    community: str = "public"
    timeout: float = 3.0
    retries: int = 1


class RedisSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = 6379
    password: str = ""
    db: int = 0
    pool_size: int = 10
    pool_timeout: float = 5.0


class ScanRange(BaseModel):
    """Board and PON range covered by one sweep."""

    board_min: int = 1
    board_max: int = 2
    pon_min: int = 1
    pon_max: int = 16

    @model_validator(mode="after")
    def _check_bounds(self) -> "ScanRange":
        if self.board_min > self.board_max or self.pon_min > self.pon_max:
            raise ValueError("scan range minimum exceeds maximum")
        return self

    def coordinates(self) -> list[tuple[int, int]]:
        return [
            (board, pon)
            for board in range(self.board_min, self.board_max + 1)
            for pon in range(self.pon_min, self.pon_max + 1)
        ]


class PortOids(BaseModel):
    """OID suffixes for one PON port, appended to a vendor base OID.

    Suffixes in a template may use ``{board}``, ``{pon}`` and ``{ifindex}``.
    ``onu_phase_state`` falls back to ``onu_status_id`` when empty.
    """

    onu_id_name: str
    onu_type: str
    onu_serial_number: str
    onu_rx_power: str
    onu_tx_power: str
    onu_status_id: str
    onu_phase_state: str = ""
    onu_ip_address: str
    onu_description: str
    onu_last_online_time: str
    onu_last_offline_time: str
    onu_last_offline_reason: str
    onu_gpon_optical_distance: str


class PortOverride(PortOids):
    board: int
    pon: int


class OltSettings(BaseModel):
    """Vendor base OIDs and the per-port OID table."""

    base_oid_1: str
    base_oid_2: str
    template: PortOids | None = None
    template_boards: list[int] = Field(default_factory=lambda: [1, 2])
    template_pons: list[int] = Field(default_factory=lambda: list(range(1, 17)))
    ports: list[PortOverride] = Field(default_factory=list)
    power_scale: float = 0.002
    power_offset: float = -30.0
    power_ceiling: float = 100.0
    clock_offset_hours: float = 7.0

    @model_validator(mode="after")
    def _check_table(self) -> "OltSettings":
        if self.template is None and not self.ports:
            raise ValueError("olt needs a template or at least one explicit port")
        return self


class ExporterSettings(BaseModel):
    metrics_port: int = 9100
    namespace: str = "olt"
    interval: float = 30.0
    scan: ScanRange = Field(default_factory=ScanRange)


class AppConfig(BaseModel):
    snmp: SnmpSettings = Field(default_factory=SnmpSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    olt: OltSettings
    exporter: ExporterSettings = Field(default_factory=ExporterSettings)
    cache_ttl: int = 300


# (section, key, env var)
_ENV_OVERRIDES: list[tuple[tuple[str, ...], str]] = [
    (("snmp", "host"), "SNMP_HOST"),
    (("snmp", "port"), "SNMP_PORT"),
    (("snmp", "community"), "SNMP_COMMUNITY"),
    (("redis", "host"), "REDIS_HOST"),
    (("redis", "port"), "REDIS_PORT"),
    (("redis", "password"), "REDIS_PASSWORD"),
    (("redis", "db"), "REDIS_DB"),
    (("exporter", "metrics_port"), "METRICS_PORT"),
    (("exporter", "scan", "board_min"), "PROMETHEUS_BOARD_MIN"),
    (("exporter", "scan", "board_max"), "PROMETHEUS_BOARD_MAX"),
    (("exporter", "scan", "pon_min"), "PROMETHEUS_PON_MIN"),
    (("exporter", "scan", "pon_max"), "PROMETHEUS_PON_MAX"),
]


def apply_env_overrides(raw: dict[str, Any], environ: dict[str, str] | None = None) -> dict[str, Any]:
    """Overlay non-empty environment variables onto the raw config mapping."""
    env = os.environ if environ is None else environ
    for path, var in _ENV_OVERRIDES:
        value = env.get(var)
        if not value:
            continue
        node = raw
        for part in path[:-1]:
            child = node.get(part)
            if child is None:
                # absent or an empty YAML section
                child = node[part] = {}
            elif not isinstance(child, dict):
                raise ConfigError(f"cannot apply ${var}: section {part!r} is not a mapping")
            node = child
        node[path[-1]] = value
        logger.debug(f"Config override {'.'.join(path)} from ${var}")
    return raw


def load_config(path: str | Path | None = None, environ: dict[str, str] | None = None) -> AppConfig:
    """Load and validate the YAML config, then apply environment overrides.

    Raises:
        ConfigError: file missing, unparsable YAML or failed validation.
    """
    env = os.environ if environ is None else environ
    config_path = Path(path or env.get("OLTMON_CONFIG") or DEFAULT_CONFIG_PATH)
    if not config_path.is_file():
        raise ConfigError(f"config file not found: {config_path}")

    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{config_path}: top level must be a mapping")

    raw = apply_env_overrides(raw, env)
    try:
        cfg = AppConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"invalid config {config_path}: {e}") from e

    logger.info(f"Loaded config from {config_path} (target {cfg.snmp.host}:{cfg.snmp.port})")
    return cfg
