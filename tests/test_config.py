"""Unit tests for configuration loading."""

import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from xiangqi.config import Config, apply_env_overrides


class TestConfig:
    """Test config defaults, TOML loading and env overrides."""

    def test_defaults(self):
        cfg = Config()

        assert cfg.search.easy_depth == 2
        assert cfg.eval.piece_values["chariot"] == 600
        assert cfg.cache.move_cache_size == 20000
        assert cfg.log_level == "INFO"

    def test_missing_file_gives_defaults(self, tmp_path):
        cfg = Config.load_from_toml(str(tmp_path / "nope.toml"))

        assert cfg.search.hard_depth == 4

    def test_load_from_toml(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            'log_level = "DEBUG"\n'
            "[search]\n"
            "medium_depth = 5\n"
            "bogus = 1\n"
            "[server]\n"
            "port = 9000\n"
        )

        cfg = Config.load_from_toml(str(path))

        assert cfg.search.medium_depth == 5
        assert not hasattr(cfg.search, "bogus")
        assert cfg.server.port == 9000
        assert cfg.log_level == "DEBUG"

    def test_env_overrides(self):
        cfg = apply_env_overrides(Config(), {"XIANGQI_SEARCH_DEPTH": "2", "XIANGQI_LOG_LEVEL": "debug"})

        assert cfg.search.depth_override == 2
        assert cfg.log_level == "DEBUG"

    def test_bad_depth_ignored(self):
        cfg = apply_env_overrides(Config(), {"XIANGQI_SEARCH_DEPTH": "deep"})

        assert cfg.search.depth_override is None
