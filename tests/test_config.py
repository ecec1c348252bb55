"""
Unit tests for omvmirror/config.py
"""
import pytest

from omvmirror.config import API_ROOT, Config, load_config


def test_defaults():
    config = Config()
    assert config.api_root == API_ROOT
    assert config.concurrency == 16
    assert config.timeout_sec is None
    assert config.digest == "md5"
    assert config.report is True


def test_load_config_overrides_and_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "api_root: http://localhost:8080/rs/v1\n"
        "output_dir: mirror\n"
        "concurrency: 4\n"
        "timeout_sec: 30\n"
        "report: false\n",
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.api_root == "http://localhost:8080/rs/v1/"
    assert config.output_dir == "mirror"
    assert config.concurrency == 4
    assert config.timeout_sec == 30.0
    assert config.report is False
    # untouched keys keep their defaults
    assert config.page_size == 1000
    assert config.delay_sec == 0.0


def test_load_config_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")

    assert load_config(path) == Config()


def test_load_config_clamps_concurrency(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("concurrency: 0\n", encoding="utf-8")

    assert load_config(path).concurrency == 1


def test_load_config_rejects_non_mapping(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ValueError, match="must be a mapping"):
        load_config(path)
