"""
Configuration parameters for the NFT ledger.

Defines storage layout, logging and validation settings. Values come from
the dataclass defaults, then an optional JSON file, then NFTLEDGER_*
environment variables (a .env file in the working directory is honored).
"""

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ENV_PREFIX = "NFTLEDGER_"

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass
class LedgerConfig:
    """Ledger-wide configuration parameters"""

    # Storage
    namespace: str = "erc721"  # Key prefix isolating this collection in a shared store
    db_name: str = "ledger.db"  # SQLite file inside data_dir

    # Validation
    strict_validation: bool = False  # Reject null sender/approver/operator addresses

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = False

    # Paths
    data_dir: Path = Path("data")
    log_dir: Path = Path("logs")

    def __post_init__(self):
        self.data_dir = Path(self.data_dir).expanduser()
        self.log_dir = Path(self.log_dir).expanduser()
        self.log_level = str(self.log_level).upper()
        if logging.getLevelName(self.log_level) == f"Level {self.log_level}":
            raise ValueError(f"Unknown log level: {self.log_level}")

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name

    @property
    def level(self) -> int:
        return logging.getLevelName(self.log_level)

    @property
    def log_file(self) -> Optional[Path]:
        """Log file path, None when file logging is off"""
        return self.log_dir / "nftledger.log" if self.log_to_file else None

    def ensure_dirs(self) -> None:
        """Create the data directory"""
        self.data_dir.mkdir(exist_ok=True, parents=True)


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _coerce(name: str, annotation, raw):
    if annotation is bool or annotation == "bool":
        return raw if isinstance(raw, bool) else _parse_bool(name, str(raw))
    if annotation is Path or annotation == "Path":
        return Path(raw)
    return str(raw)


def load_config(config_path: Optional[str] = None) -> LedgerConfig:
    """
    Load configuration from file and environment, or use defaults.

    Args:
        config_path: Optional path to a JSON config file

    Returns:
        LedgerConfig instance

    Raises:
        ValueError: unknown keys or malformed values
    """
    known = {f.name: f.type for f in fields(LedgerConfig)}
    values = {}

    if config_path:
        data = json.loads(Path(config_path).read_text())
        if not isinstance(data, dict):
            raise ValueError(f"Config file {config_path} must hold a JSON object")
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
        for name, raw in data.items():
            values[name] = _coerce(name, known[name], raw)

    load_dotenv()
    for name, annotation in known.items():
        raw = os.environ.get(ENV_PREFIX + name.upper())
        if raw is not None:
            values[name] = _coerce(ENV_PREFIX + name.upper(), annotation, raw)

    return LedgerConfig(**values)
