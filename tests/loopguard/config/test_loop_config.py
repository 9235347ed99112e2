"""
LoopConfig loading tests

Run:
    python -m pytest tests/loopguard/config/test_loop_config.py -v
"""

from pathlib import Path

import pytest

from loopguard.config.loader import LoopConfig, load_loop_config, load_loop_config_async
from loopguard.errors import ConfigurationError


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "loop.yaml"
    path.write_text(text, encoding="utf-8")
    return path


# ===========================================================================
# LoopConfig model
# ===========================================================================


class TestLoopConfig:
    def test_defaults(self):
        config = LoopConfig()
        assert config.max_turns == 50
        assert config.timeout_seconds == 1800.0
        assert isinstance(config.timeout_seconds, float)
        assert config.score_threshold == 0.0
        assert config.require_pass is True
        assert config.stuck_threshold == 3
        assert config.cost_limit is None
        assert config.working_directory == "."
        assert config.evaluate_every_n_turns == 0
        assert config.finish_tool_name == "complete_task"
        assert config.max_consecutive_errors == 3

    def test_blank_finish_tool_falls_back(self):
        assert LoopConfig(finish_tool_name="  ").finish_tool_name == "complete_task"

    def test_path_working_directory(self, tmp_path):
        config = LoopConfig(working_directory=tmp_path)
        assert config.workspace == tmp_path

    def test_with_overrides_validates(self):
        config = LoopConfig().with_overrides(max_turns=5)
        assert config.max_turns == 5
        with pytest.raises(ConfigurationError):
            config.with_overrides(max_turns=0)


# ===========================================================================
# load_loop_config
# ===========================================================================


class TestLoadLoopConfig:
    def test_packaged_defaults(self):
        assert load_loop_config() == LoopConfig()

    def test_user_file_overrides_defaults(self, tmp_path):
        path = _write(tmp_path, "loop:\n  max_turns: 12\n  cost_limit: 2.5\n")
        config = load_loop_config(path)
        assert config.max_turns == 12
        assert config.cost_limit == 2.5
        assert config.timeout_seconds == 1800

    def test_file_without_section(self, tmp_path):
        path = _write(tmp_path, "stuck_threshold: 0\n")
        assert load_loop_config(path).stuck_threshold == 0

    def test_keyword_overrides_win(self, tmp_path):
        path = _write(tmp_path, "loop:\n  max_turns: 12\n")
        assert load_loop_config(path, max_turns=7).max_turns == 7

    @pytest.mark.parametrize("field, value", [
        ("max_turns", 0),
        ("timeout_seconds", -1),
        ("score_threshold", 1.5),
        ("stuck_threshold", -1),
        ("cost_limit", 0),
        ("evaluate_every_n_turns", -2),
        ("max_consecutive_errors", 0),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ConfigurationError):
            load_loop_config(**{field: value})

    def test_unknown_key(self, tmp_path):
        path = _write(tmp_path, "loop:\n  max_turn: 3\n")
        with pytest.raises(ConfigurationError):
            load_loop_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_loop_config(tmp_path / "absent.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = _write(tmp_path, "loop: [unclosed\n")
        with pytest.raises(ConfigurationError):
            load_loop_config(path)

    def test_section_must_be_mapping(self, tmp_path):
        path = _write(tmp_path, "loop: 5\n")
        with pytest.raises(ConfigurationError):
            load_loop_config(path)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            load_loop_config(max_turns=-1)


class TestLoadLoopConfigAsync:
    @pytest.mark.asyncio
    async def test_reads_user_file(self, tmp_path):
        path = _write(tmp_path, "loop:\n  evaluate_every_n_turns: 2\n  require_pass: false\n")
        config = await load_loop_config_async(path, score_threshold=0.9)
        assert config.evaluate_every_n_turns == 2
        assert config.require_pass is False
        assert config.score_threshold == 0.9

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            await load_loop_config_async(tmp_path / "absent.yaml")
