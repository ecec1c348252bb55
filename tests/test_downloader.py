"""
Unit tests for omvmirror/downloader.py
"""
import hashlib

import pytest

from omvmirror.downloader import Downloader, file_matches
from omvmirror.errors import FetchError
from omvmirror.nodes import FileDescriptor
from tests.fixtures.fake_client import FakeResourceClient, file_record

PATH = ("OMV_1234567890", "Kerkstraat 1", "plan.pdf")


@pytest.fixture
def client():
    return FakeResourceClient()


@pytest.fixture
def descriptor(client):
    return FileDescriptor.from_record(file_record(client, "f-1", "plan.pdf", b"remote content", "Plan"))


def test_file_matches(tmp_path):
    target = tmp_path / "a.bin"
    target.write_bytes(b"hello")

    assert file_matches(target, hashlib.md5(b"hello").digest())
    assert not file_matches(target, hashlib.md5(b"other").digest())
    assert not file_matches(tmp_path / "missing.bin", hashlib.md5(b"hello").digest())
    assert not file_matches(target, None)


@pytest.mark.asyncio
async def test_sync_downloads_missing_file(tmp_path, client, descriptor):
    downloader = Downloader(client, tmp_path)

    result = await downloader.sync(PATH, descriptor)

    assert (tmp_path / "OMV_1234567890" / "Kerkstraat 1" / "plan.pdf").read_bytes() == b"remote content"
    assert result.path == PATH
    assert result.description == "Plan"
    assert result.upload_dates == ("2023", "5", "1")
    assert client.downloads == ["f-1"]
    assert (downloader.transferred, downloader.skipped) == (1, 0)


@pytest.mark.asyncio
async def test_sync_skips_matching_file(tmp_path, client, descriptor):
    target = tmp_path.joinpath(*PATH)
    target.parent.mkdir(parents=True)
    target.write_bytes(b"remote content")
    downloader = Downloader(client, tmp_path)

    await downloader.sync(PATH, descriptor)

    assert client.downloads == []
    assert (downloader.transferred, downloader.skipped) == (0, 1)


@pytest.mark.asyncio
async def test_sync_overwrites_mismatching_file(tmp_path, client, descriptor):
    target = tmp_path.joinpath(*PATH)
    target.parent.mkdir(parents=True)
    target.write_bytes(b"remote content that is longer and stale")
    downloader = Downloader(client, tmp_path)

    await downloader.sync(PATH, descriptor)

    assert target.read_bytes() == b"remote content"
    assert client.downloads == ["f-1"]


@pytest.mark.asyncio
async def test_sync_without_hash_always_downloads(tmp_path, client):
    record = file_record(client, "f-2", "a.txt", b"x")
    del record["hash"]
    target = tmp_path / "a.txt"
    target.write_bytes(b"x")

    await Downloader(client, tmp_path).sync(("a.txt",), FileDescriptor.from_record(record))

    assert client.downloads == ["f-2"]


@pytest.mark.asyncio
async def test_sync_propagates_fetch_error(tmp_path, client, descriptor):
    client.fail_downloads["f-1"] = FetchError("inzage/bestanden/f-1/download", 500, "boom")
    downloader = Downloader(client, tmp_path)

    with pytest.raises(FetchError) as info:
        await downloader.sync(PATH, descriptor)

    assert info.value.status == 500
    assert downloader.transferred == 0
