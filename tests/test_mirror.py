"""
End-to-end tests for omvmirror/mirror.py with the in-memory resource client.
"""
from datetime import datetime, timezone

import pytest

from omvmirror.config import Config
from omvmirror.errors import FetchError
from omvmirror.manifest import read_manifest
from omvmirror.mirror import mirror_case
from tests.fixtures.fake_client import CASE_ID, EXPECTED_PATHS, build_sample_case

GENERATED_AT = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def config(tmp_path):
    return Config(output_dir=str(tmp_path), concurrency=4)


@pytest.mark.asyncio
async def test_full_run_writes_files_report_and_manifest(tmp_path, config):
    client = build_sample_case()

    result = await mirror_case(client, config, CASE_ID, GENERATED_AT)

    assert result.files == len(EXPECTED_PATHS)
    assert result.transferred == len(EXPECTED_PATHS)
    assert result.skipped == 0
    assert result.manifest_path == tmp_path / CASE_ID / "bestanden.txt"
    lines = result.manifest_path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == f"# {CASE_ID}: Verbouwing woning"
    assert lines[1] == f"## automatisch gegenereerd met omvmirror {CASE_ID} op 2024-03-01T12:00:00+00:00"
    assert read_manifest(result.manifest_path) == sorted(EXPECTED_PATHS)
    assert f"{CASE_ID}/Kerkstraat 1/STEDENBOUW/BIJLAGEN/FOTOS/foto1.jpg (2023/5/1): Voorgevel" in lines

    report = result.report_path.read_text(encoding="utf-8")
    assert f"<title>{CASE_ID}: Verbouwing woning</title>" in report
    assert 'href="../OMV_2023000001/Kerkstraat%201/grondplan.pdf"' in report
    assert "<th>TekeningSoort</th>" in report
    assert "<caption>Stemming</caption>" in report


@pytest.mark.asyncio
async def test_second_run_transfers_nothing(config):
    client = build_sample_case()
    await mirror_case(client, config, CASE_ID, GENERATED_AT)
    first_fetches = client.binary_fetches()

    result = await mirror_case(client, config, CASE_ID, GENERATED_AT)

    assert client.binary_fetches() == first_fetches
    assert result.transferred == 0
    assert result.skipped == len(EXPECTED_PATHS)


@pytest.mark.asyncio
async def test_corrupted_file_is_refetched_alone(tmp_path, config):
    client = build_sample_case()
    await mirror_case(client, config, CASE_ID, GENERATED_AT)
    corrupted = tmp_path / CASE_ID / "Kerkstraat 1" / "AANVRAAG" / "aanvraag.pdf"
    data = bytearray(corrupted.read_bytes())
    data[0] ^= 0xFF
    corrupted.write_bytes(bytes(data))
    client.downloads.clear()

    result = await mirror_case(client, config, CASE_ID, GENERATED_AT)

    assert client.downloads == ["f-aanvraag"]
    assert corrupted.read_bytes() == b"aanvraagformulier"
    assert result.transferred == 1


@pytest.mark.asyncio
async def test_manifest_is_sorted_whatever_the_completion_order(config):
    client = build_sample_case()
    # earliest path in sort order finishes last
    for i, uuid in enumerate(EXPECTED_PATHS[p] for p in sorted(EXPECTED_PATHS)):
        client.delays[uuid] = 0.01 * (len(EXPECTED_PATHS) - i)

    result = await mirror_case(client, config, CASE_ID, GENERATED_AT)

    assert client.finished_downloads != [EXPECTED_PATHS[p] for p in sorted(EXPECTED_PATHS)]
    assert read_manifest(result.manifest_path) == sorted(EXPECTED_PATHS)


@pytest.mark.asyncio
async def test_failed_download_aborts_without_manifest(tmp_path, config):
    client = build_sample_case()
    client.fail_downloads["f-foto2"] = FetchError("inzage/bestanden/f-foto2/download", None, "connection reset")
    client.delays["f-foto2"] = 0.02
    # a slow sibling is still in flight when f-foto2 fails
    client.delays["f-besluit"] = 1.0

    with pytest.raises(FetchError, match="connection reset"):
        await mirror_case(client, config, CASE_ID, GENERATED_AT)

    case_dir = tmp_path / CASE_ID
    assert not (case_dir / "bestanden.txt").exists()
    assert not (case_dir / "inhoud.html").exists()
    assert (case_dir / "Kerkstraat 1" / "grondplan.pdf").read_bytes() == b"grondplan"
    assert "f-besluit" in client.cancelled_downloads

    # the retry only fetches what is not on disk yet
    del client.fail_downloads["f-foto2"]
    client.delays.clear()
    already_done = set(client.finished_downloads)
    client.downloads.clear()

    result = await mirror_case(client, config, CASE_ID, GENERATED_AT)

    assert already_done.isdisjoint(client.downloads)
    assert "f-foto2" in client.downloads
    assert result.manifest_path.exists()


@pytest.mark.asyncio
async def test_report_can_be_disabled(tmp_path):
    config = Config(output_dir=str(tmp_path), report=False)

    result = await mirror_case(build_sample_case(), config, CASE_ID, GENERATED_AT)

    assert result.report_path is None
    assert not (tmp_path / CASE_ID / "inhoud.html").exists()
    assert result.manifest_path.exists()


@pytest.mark.asyncio
async def test_unknown_case_fails_before_any_download(tmp_path, config):
    client = build_sample_case()
    del client.records["inzage/projecten/header"]

    with pytest.raises(FetchError):
        await mirror_case(client, config, CASE_ID, GENERATED_AT)

    assert client.downloads == []
    assert not (tmp_path / CASE_ID).exists()


@pytest.mark.asyncio
async def test_report_embeds_data_blocks(config):
    result = await mirror_case(build_sample_case(), config, CASE_ID, GENERATED_AT)

    report = result.report_path.read_text(encoding="utf-8")
    assert '<div id="db-1" class="formio"></div>' in report
    assert '<div id="db-2" class="formio"></div>' in report
    assert "&quot;oppervlakte&quot;: 120" in report
    assert 'Formio.createForm(document.getElementById("db-1"), ' in report
    assert 'f.submission = {data: {"oppervlakte": 120, "eenheid": "m2"}}' in report
    assert "formio.full.min.js" in report
