# xiangqi/config.py
from dataclasses import dataclass, field
from typing import Dict, Optional
import logging
import os
import tomllib

logger = logging.getLogger(__name__)

# Material values, keyed by PieceType value
PIECE_VALUES = {
    "general": 10000,
    "chariot": 600,
    "cannon": 300,
    "horse": 300,
    "soldier": 100,
    "advisor": 20,
    "elephant": 20,
}


@dataclass
class SearchConfig:
    # (max depth, time budget in seconds) per difficulty tier
    easy_depth: int = 2
    easy_time: float = 1.5
    medium_depth: int = 3
    medium_time: float = 4.0
    hard_depth: int = 4
    hard_time: float = 12.0
    depth_override: Optional[int] = None  # forces one depth for every tier
    capture_bonus: int = 1000
    killer_bonus: int = 500
    max_killers: int = 2
    history_max: int = 100
    position_factor: int = 10


@dataclass
class EvalConfig:
    piece_values: Dict[str, int] = field(default_factory=lambda: PIECE_VALUES.copy())
    check_bonus: int = 150
    king_safety_bonus: int = 5
    soldier_crossed_bonus: int = 15
    soldier_advance_bonus: int = 10
    mobility_factors: Dict[str, int] = field(default_factory=lambda: {
        "chariot": 3, "cannon": 2, "horse": 4,
    })
    mobility_max: int = 30


@dataclass
class CacheConfig:
    move_cache_size: int = 20000


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    worker_threads: int = 4
    default_difficulty: str = "medium"


@dataclass
class Config:
    search: SearchConfig = field(default_factory=SearchConfig)
    eval: EvalConfig = field(default_factory=EvalConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = "INFO"

    @staticmethod
    def load_from_toml(path: str = "config.toml") -> "Config":
        cfg = Config()
        if not os.path.exists(path):
            return cfg
        with open(path, "rb") as f:
            raw = tomllib.load(f)
        for section in ("search", "eval", "cache", "server"):
            target = getattr(cfg, section)
            for k, v in raw.get(section, {}).items():
                if hasattr(target, k):
                    setattr(target, k, v)
                else:
                    logger.warning("Unknown config key %s.%s in %s", section, k, path)
        if "log_level" in raw:
            cfg.log_level = str(raw["log_level"])
        return cfg


def apply_env_overrides(cfg: Config, environ=None) -> Config:
    """Apply XIANGQI_SEARCH_DEPTH / XIANGQI_LOG_LEVEL on top of ``cfg``."""
    environ = os.environ if environ is None else environ
    override_depth = environ.get("XIANGQI_SEARCH_DEPTH")
    if override_depth:
        try:
            cfg.search.depth_override = int(override_depth)
        except ValueError:
            logger.warning("Ignoring non-integer XIANGQI_SEARCH_DEPTH=%r", override_depth)
    log_level = environ.get("XIANGQI_LOG_LEVEL")
    if log_level:
        cfg.log_level = log_level.upper()
    return cfg


def configure_logging(level: Optional[str] = None) -> None:
    """Root handler for the service entry point."""
    logging.basicConfig(
        level=getattr(logging, (level or CONFIG.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# single globally importable config instance
CONFIG = apply_env_overrides(
    Config.load_from_toml(os.environ.get("XIANGQI_CONFIG_TOML", "config.toml"))
)
