from pathlib import Path

import pytest

from knnlab.config import RunConfig, parse_args

REQUIRED = ["--data", "d.csv", "--outcome", "y", "--mode", "classification", "--predictors", "a", "b"]


class TestParseArgs:
    def test_explicit_ks(self):
        config, args = parse_args(REQUIRED + ["--k", "1", "3", "5"])
        assert config.data == Path("d.csv")
        assert config.predictors == ["a", "b"]
        assert config.candidate_ks() == [1, 3, 5]
        assert config.metric == "accuracy"
        assert config.v == 10
        assert not args.verbose

    def test_k_range(self):
        config, _ = parse_args(REQUIRED + ["--k-range", "1", "100", "3", "--k-scale", "log"])
        assert config.candidate_ks() == [1, 10, 100]

    def test_k_options_required_and_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args(REQUIRED)
        with pytest.raises(SystemExit):
            parse_args(REQUIRED + ["--k", "1", "--k-range", "1", "5", "2"])

    def test_metric_must_match_mode(self):
        with pytest.raises(ValueError):
            parse_args(REQUIRED + ["--k", "1", "--metric", "rmse"])

    def test_overrides(self):
        config, _ = parse_args(REQUIRED + [
            "--k", "3", "--folds", "5", "--repeats", "2", "--seed", "7",
            "--train-proportion", "0.8", "--stratify", "y", "--metric", "macro_f1",
        ])
        assert (config.v, config.repeats, config.seed) == (5, 2, 7)
        assert config.train_proportion == 0.8
        assert config.stratify == "y"
        assert config.metric == "macro_f1"


class TestRunConfig:
    def test_regression_default_metric(self):
        config = RunConfig(data="d.csv", outcome="y", mode="regression", predictors=["a"], ks=[1])
        assert config.validate().metric == "rmse"

    def test_needs_one_k_source(self):
        with pytest.raises(ValueError):
            RunConfig(data="d.csv", outcome="y", mode="regression", predictors=["a"]).validate()
        with pytest.raises(ValueError):
            RunConfig(data="d.csv", outcome="y", mode="regression", predictors=["a"],
                      ks=[1], k_range=(1, 5, 2)).validate()

    def test_needs_predictors(self):
        with pytest.raises(ValueError):
            RunConfig(data="d.csv", outcome="y", mode="regression", predictors=[], ks=[1]).validate()
