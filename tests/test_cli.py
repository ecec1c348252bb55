"""
Tests for omvmirror/cli.py
"""
from unittest.mock import patch

import pytest

from omvmirror import cli
from omvmirror.config import Config
from omvmirror.errors import FetchError


def test_malformed_case_id_exits_before_any_request(capsys):
    with patch.object(cli, "run") as run:
        with pytest.raises(SystemExit) as info:
            cli.main(["12345"])

    assert info.value.code == 1
    assert "Ongekend formaat voor OMV nummer: 12345" in capsys.readouterr().err
    run.assert_not_called()


def test_missing_argument_is_a_usage_error():
    with pytest.raises(SystemExit) as info:
        cli.main([])

    assert info.value.code == 2


def test_extra_argument_is_a_usage_error():
    with pytest.raises(SystemExit) as info:
        cli.main(["1234567890", "0987654321"])

    assert info.value.code == 2


def test_bare_id_is_normalized_and_run():
    async def fake_run(config, case_id):
        fake_run.seen = (config, case_id)
        return 0

    with patch.object(cli, "run", fake_run):
        with pytest.raises(SystemExit) as info:
            cli.main(["1234567890"])

    assert info.value.code == 0
    assert fake_run.seen == (Config(), "OMV_1234567890")


def test_config_file_is_loaded(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("concurrency: 3\n", encoding="utf-8")

    async def fake_run(config, case_id):
        fake_run.config = config
        return 0

    with patch.object(cli, "run", fake_run):
        with pytest.raises(SystemExit):
            cli.main(["OMV_1234567890", "--config", str(config_path)])

    assert fake_run.config.concurrency == 3


def test_missing_config_file(tmp_path):
    with pytest.raises(SystemExit) as info:
        cli.main(["OMV_1234567890", "--config", str(tmp_path / "absent.yaml")])

    assert "config file not found" in str(info.value.code)


def test_run_failure_is_logged_with_cause(caplog):
    async def failing_run(config, case_id):
        try:
            raise ConnectionResetError("peer reset")
        except ConnectionResetError as exc:
            raise FetchError("http://x/inzage/bestanden/f/download", None, "peer reset") from exc

    with patch.object(cli, "run", failing_run):
        with pytest.raises(SystemExit) as info:
            cli.main(["OMV_1234567890"])

    assert info.value.code == 1
    assert "Mirror of OMV_1234567890 failed" in caplog.text
    assert "caused by ConnectionResetError: peer reset" in caplog.text
