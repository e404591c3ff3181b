"""
Tests for settings and scenario loading.
"""

from decimal import Decimal

import pytest
import yaml

import multisend_config
from multisend_config import (
    DEFAULT_SETTINGS_PATH,
    compute_checksum,
    get_active_settings,
    load_scenario,
    parse_scenario,
    parse_settings,
)
from multisend_config.loader import load_yaml_file, parse_coins
from multisend_config.schema import EngineSettings, ScenarioExpectation


def _minimal_scenario(**overrides):
    data = {
        "denoms": [{"denom": "d", "issuer": "I", "burn_rate": "0.1"}],
        "balances": [{"address": "a", "coins": {"d": 20}}],
        "tx": {
            "inputs": [{"address": "a", "coins": {"d": 10}}],
            "outputs": [{"address": "b", "coins": {"d": 10}}],
        },
    }
    data.update(overrides)
    return data


class TestEngineSettings:

    def test_defaults(self):
        settings = EngineSettings()
        assert settings.solvency_mode == "individual"
        assert settings.fee_workers == 1
        assert settings.log_level == "INFO"

    def test_level_upper_cased(self):
        assert EngineSettings(log_level="debug").log_level == "DEBUG"

    @pytest.mark.parametrize("kwargs", [
        {"solvency_mode": "optimistic"},
        {"fee_workers": 0},
        {"fee_workers": True},
        {"log_level": "LOUD"},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            EngineSettings(**kwargs)

    def test_parse_sections(self):
        settings = parse_settings({
            "engine": {"solvency_mode": "aggregate", "fee_workers": 3},
            "logging": {"level": "warning"},
        })
        assert settings == EngineSettings("aggregate", 3, "WARNING")

    def test_parse_empty(self):
        assert parse_settings({}) == EngineSettings()


class TestActiveSettings:

    def test_packaged_defaults(self):
        assert DEFAULT_SETTINGS_PATH.exists()
        assert get_active_settings() == EngineSettings()

    def test_custom_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("engine:\n  solvency_mode: aggregate\n")
        assert get_active_settings(path).solvency_mode == "aggregate"

    def test_config_trace_emitted(self, captured_logs):
        get_active_settings()
        (trace,) = [r for r in captured_logs() if r["message"] == "MULTISEND_CONFIG_TRACE"]
        assert trace["checksum"] == compute_checksum(load_yaml_file(DEFAULT_SETTINGS_PATH))
        assert trace["solvency_mode"] == "individual"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_settings(tmp_path / "absent.yaml")

    def test_custom_file_traced_with_its_checksum(self, tmp_path, captured_logs):
        path = tmp_path / "settings.yaml"
        path.write_text("engine:\n  fee_workers: 3\n")
        assert get_active_settings(path).fee_workers == 3
        (trace,) = [r for r in captured_logs() if r["message"] == "MULTISEND_CONFIG_TRACE"]
        assert trace["settings_path"] == str(path)
        assert trace["checksum"] == compute_checksum({"engine": {"fee_workers": 3}})

    def test_public_surface(self):
        assert set(multisend_config.__all__) == {
            "DEFAULT_SETTINGS_PATH",
            "EngineSettings",
            "Scenario",
            "ScenarioExpectation",
            "compute_checksum",
            "get_active_settings",
            "load_scenario",
            "load_yaml_file",
            "parse_scenario",
            "parse_settings",
        }
        assert all(hasattr(multisend_config, name) for name in multisend_config.__all__)


class TestYamlLoading:

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError, match="mapping"):
            load_yaml_file(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("engine: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_yaml_file(path)

    def test_checksum_ignores_key_order(self):
        assert compute_checksum({"a": 1, "b": [1, 2]}) == compute_checksum({"b": [1, 2], "a": 1})
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})


class TestScenarioParsing:

    def test_minimal(self):
        scenario = parse_scenario(_minimal_scenario(), default_name="mini")
        assert scenario.name == "mini"
        assert scenario.denoms[0].burn_rate == Decimal("0.1")
        assert scenario.denoms[0].commission_rate == 0
        assert scenario.balances[0].amount_of("d") == 20
        assert scenario.tx.outputs[0].address == "b"
        assert scenario.settings is None
        assert scenario.expect is None

    @pytest.mark.parametrize("section", ["denoms", "balances", "tx"])
    def test_missing_section(self, section):
        data = _minimal_scenario()
        del data[section]
        with pytest.raises(KeyError, match=section):
            parse_scenario(data)

    def test_float_amount_rejected(self):
        with pytest.raises(ValueError, match="integer"):
            parse_coins({"d": 1.5}, "a")

    def test_negative_leg_rejected(self):
        data = _minimal_scenario(tx={
            "inputs": [{"address": "a", "coins": {"d": -1}}],
            "outputs": [],
        })
        with pytest.raises(ValueError, match="Negative"):
            parse_scenario(data)

    def test_expectation_needs_exactly_one_outcome(self):
        with pytest.raises(ValueError, match="exactly one"):
            parse_scenario(_minimal_scenario(expect={}))
        with pytest.raises(ValueError):
            ScenarioExpectation(changes={}, error_code="UNKNOWN_DENOM")

    def test_expected_changes_frozen(self):
        scenario = parse_scenario(_minimal_scenario(expect={"changes": {"a": {"d": -11}}}))
        assert scenario.expect.changes["a"]["d"] == -11
        with pytest.raises(TypeError):
            scenario.expect.changes["a"]["d"] = 0

    def test_checksum_not_part_of_equality(self):
        first = parse_scenario(_minimal_scenario(description="one"))
        second = parse_scenario(_minimal_scenario(description="one", extra_key=True))
        assert first.checksum != second.checksum
        assert first == second

    def test_load_fixture(self, scenario_dir):
        scenario = load_scenario(scenario_dir / "send_to_issuer_aggregate.yaml")
        assert scenario.name == "send_to_issuer_aggregate"
        assert scenario.settings.solvency_mode == "aggregate"
        assert dict(scenario.expect.changes["account1"]) == {"denom1": -100}
