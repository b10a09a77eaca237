"""Tests for the colocation strategy model and validation."""

import itertools

import pytest

from slo_controller.errors import ConfigError, MergeError
from slo_controller.selector import LabelSelector, LabelSelectorRequirement
from slo_controller.strategy import (
    ColocationConfig,
    ColocationStrategy,
    NodeColocationConfig,
    default_colocation_config,
    default_colocation_strategy,
    is_colocation_strategy_valid,
    is_node_colocation_config_valid,
    merge_strategy,
)
from tests.conftest import node_config

NUMERIC_FIELDS = {
    "cpu_reclaim_threshold_percent": 50,
    "memory_reclaim_threshold_percent": 50,
    "degrade_time_minutes": 10,
    "update_time_threshold_seconds": 60,
    "resource_diff_threshold": 0.2,
}


class TestDefaults:
    """Test built-in defaults."""

    def test_default_strategy(self):
        strategy = default_colocation_strategy()
        assert strategy == ColocationStrategy(
            enable=False,
            cpu_reclaim_threshold_percent=65,
            memory_reclaim_threshold_percent=65,
            degrade_time_minutes=15,
            update_time_threshold_seconds=300,
            resource_diff_threshold=0.1,
        )
        assert is_colocation_strategy_valid(strategy)

    def test_default_strategy_is_fresh_each_call(self):
        first = default_colocation_strategy()
        first.cpu_reclaim_threshold_percent = 1
        assert default_colocation_strategy().cpu_reclaim_threshold_percent == 65

    def test_default_config_has_no_node_configs(self):
        cfg = default_colocation_config()
        assert cfg.strategy == default_colocation_strategy()
        assert cfg.node_configs == ()


class TestStrategyValidation:
    """Test is_colocation_strategy_valid."""

    def test_none_is_invalid(self):
        assert not is_colocation_strategy_valid(None)

    def test_empty_is_valid(self):
        assert is_colocation_strategy_valid(ColocationStrategy())

    def test_enable_false_is_valid(self):
        assert is_colocation_strategy_valid(ColocationStrategy(enable=False))

    @pytest.mark.parametrize("field_name", sorted(NUMERIC_FIELDS))
    @pytest.mark.parametrize("bad_value", [0, -1])
    def test_non_positive_field_is_invalid(self, field_name, bad_value):
        strategy = ColocationStrategy(**{field_name: bad_value})
        assert not is_colocation_strategy_valid(strategy)

    def test_any_non_positive_field_invalidates_combination(self):
        """A single bad field makes every combination of fields invalid."""
        names = sorted(NUMERIC_FIELDS)
        for size in range(1, len(names) + 1):
            for combo in itertools.combinations(names, size):
                values = {name: NUMERIC_FIELDS[name] for name in combo}
                assert is_colocation_strategy_valid(ColocationStrategy(**values))
                for bad in combo:
                    broken = dict(values)
                    broken[bad] = 0
                    assert not is_colocation_strategy_valid(ColocationStrategy(**broken))
                    assert not is_node_colocation_config_valid(node_config({"zone": "a"}, **broken))


class TestNodeConfigValidation:
    """Test is_node_colocation_config_valid."""

    def test_valid_override(self):
        assert is_node_colocation_config_valid(node_config({"zone": "a"}, enable=True))

    def test_none_is_invalid(self):
        assert not is_node_colocation_config_valid(None)

    def test_missing_selector_is_invalid(self):
        cfg = NodeColocationConfig(node_selector=None, strategy=ColocationStrategy(enable=True))
        assert not is_node_colocation_config_valid(cfg)

    def test_empty_match_labels_is_invalid(self):
        assert not is_node_colocation_config_valid(node_config({}, enable=True))

    def test_expressions_alone_are_not_enough(self):
        cfg = NodeColocationConfig(
            node_selector=LabelSelector(
                match_expressions=[LabelSelectorRequirement("zone", "Exists")]
            ),
            strategy=ColocationStrategy(enable=True),
        )
        assert not is_node_colocation_config_valid(cfg)

    def test_unparseable_selector_is_invalid(self):
        assert not is_node_colocation_config_valid(node_config({"bad key!": "a"}, enable=True))

    @pytest.mark.parametrize("match_labels", [{"zone\n": "a"}, {"zone": "a\n"}])
    def test_trailing_newline_is_invalid(self, match_labels):
        assert not is_node_colocation_config_valid(node_config(match_labels, enable=True))

    def test_bad_expression_is_invalid(self):
        cfg = NodeColocationConfig(
            node_selector=LabelSelector(
                match_labels={"zone": "a"},
                match_expressions=[LabelSelectorRequirement("pool", "Near", ["x"])],
            ),
            strategy=ColocationStrategy(enable=True),
        )
        assert not is_node_colocation_config_valid(cfg)

    def test_noop_override_is_invalid(self):
        assert not is_node_colocation_config_valid(node_config({"zone": "a"}))

    def test_enable_false_override_is_not_noop(self):
        assert is_node_colocation_config_valid(node_config({"zone": "a"}, enable=False))


class TestMerge:
    """Test merge_strategy."""

    @pytest.mark.parametrize("field_name", ["enable"] + sorted(NUMERIC_FIELDS))
    def test_single_field_override_changes_only_that_field(self, field_name):
        base = default_colocation_strategy()
        value = True if field_name == "enable" else NUMERIC_FIELDS[field_name]
        merged = merge_strategy(base, ColocationStrategy(**{field_name: value}))

        for name in ["enable"] + sorted(NUMERIC_FIELDS):
            expected = value if name == field_name else getattr(base, name)
            assert getattr(merged, name) == expected

    def test_merge_does_not_mutate_inputs(self):
        base = default_colocation_strategy()
        override = ColocationStrategy(enable=True, cpu_reclaim_threshold_percent=90)

        merged = merge_strategy(base, override)
        merged.memory_reclaim_threshold_percent = 1

        assert base == default_colocation_strategy()
        assert override == ColocationStrategy(enable=True, cpu_reclaim_threshold_percent=90)

    def test_empty_override_returns_equal_copy(self):
        base = default_colocation_strategy()
        merged = merge_strategy(base, ColocationStrategy())
        assert merged == base
        assert merged is not base

    def test_merge_rejects_non_strategy(self):
        with pytest.raises(MergeError):
            merge_strategy(default_colocation_strategy(), {"enable": True})
        with pytest.raises(MergeError):
            merge_strategy(None, ColocationStrategy())


class TestParsing:
    """Test JSON parsing of strategies and configs."""

    def test_strategy_from_dict(self):
        strategy = ColocationStrategy.from_dict({
            "enable": True,
            "cpuReclaimThresholdPercent": 60,
            "resourceDiffThreshold": 1,
            "unknownField": "ignored",
        })
        assert strategy == ColocationStrategy(
            enable=True, cpu_reclaim_threshold_percent=60, resource_diff_threshold=1.0
        )
        assert isinstance(strategy.resource_diff_threshold, float)

    @pytest.mark.parametrize("document", [
        {"enable": "true"},
        {"cpuReclaimThresholdPercent": "65"},
        {"cpuReclaimThresholdPercent": 65.5},
        {"degradeTimeMinutes": True},
        {"resourceDiffThreshold": "0.1"},
    ])
    def test_wrong_types_raise(self, document):
        with pytest.raises(ConfigError):
            ColocationStrategy.from_dict(document)

    def test_to_dict_omits_unset(self):
        strategy = ColocationStrategy(enable=False, degrade_time_minutes=5)
        assert strategy.to_dict() == {"enable": False, "degradeTimeMinutes": 5}

    def test_config_from_dict(self, sample_document):
        cfg = ColocationConfig.from_dict(sample_document)

        assert cfg.strategy == ColocationStrategy(enable=True, cpu_reclaim_threshold_percent=70)
        assert len(cfg.node_configs) == 2
        first = cfg.node_configs[0]
        assert first.node_selector.match_labels == {"zone": "a"}
        assert first.strategy == ColocationStrategy(cpu_reclaim_threshold_percent=80)
        assert isinstance(cfg.node_configs, tuple)

    def test_config_to_dict(self, sample_document):
        cfg = ColocationConfig.from_dict(sample_document)
        assert cfg.to_dict()["nodeConfigs"][0] == {
            "nodeSelector": {"matchLabels": {"zone": "a"}},
            "cpuReclaimThresholdPercent": 80,
        }

    def test_node_configs_must_be_list(self):
        with pytest.raises(ConfigError):
            ColocationConfig.from_dict({"nodeConfigs": {"zone": "a"}})

    def test_config_must_be_object(self):
        with pytest.raises(ConfigError):
            ColocationConfig.from_dict(["enable"])
