import gzip
import os

import pytest
import zstandard as zstd

from metaload.errors import DecodeInitError, PassphraseRequiredError, SourceNotFoundError
from metaload.pipeline.compression import Compression, has_compression_suffix
from metaload.pipeline.reader import ComposedStream, StreamComposer
from metaload.crypto.encryptor import Algorithm

BLOB = b'{"format": {"name": "myjfs"}, "counters": {"nextInode": 42}}\n' * 500


class RecordingLayer:
    def __init__(self, name, calls):
        self.name = name
        self.calls = calls

    def read(self, size=-1):
        return b""

    def close(self):
        self.calls.append(self.name)


@pytest.mark.parametrize("path,expected", [
    ("meta.json.gz", Compression.GZIP),
    ("meta.bin.zstd", Compression.ZSTD),
    ("meta.json", Compression.NONE),
    ("meta.zst", Compression.NONE),
    ("meta.gz.json", Compression.NONE),
])
def test_compression_from_suffix(path, expected):
    assert Compression.from_path(path) is expected
    assert has_compression_suffix(path) == (expected is not Compression.NONE)


def test_plain_source(tmp_path):
    src = tmp_path / "meta.json"
    src.write_bytes(BLOB)
    with StreamComposer().open(str(src)) as stream:
        assert stream.compression_layer is stream.base_layer
        assert stream.read() == BLOB


def test_gzip_round_trip(tmp_path):
    src = tmp_path / "meta.json.gz"
    src.write_bytes(gzip.compress(BLOB))
    with StreamComposer().open(str(src)) as stream:
        assert stream.compression_layer is not stream.base_layer
        assert stream.read() == BLOB


def test_zstd_round_trip(tmp_path):
    src = tmp_path / "meta.bin.zstd"
    src.write_bytes(zstd.ZstdCompressor(level=3).compress(BLOB))
    with StreamComposer().open(str(src)) as stream:
        chunks = []
        while chunk := stream.read(4096):
            chunks.append(chunk)
    assert b"".join(chunks) == BLOB


def test_zstd_multiple_frames(tmp_path):
    src = tmp_path / "meta.bin.zstd"
    cctx = zstd.ZstdCompressor()
    src.write_bytes(cctx.compress(BLOB[:1000]) + cctx.compress(BLOB[1000:]))
    with StreamComposer().open(str(src)) as stream:
        assert stream.read() == BLOB


def test_bad_gzip_header(tmp_path):
    src = tmp_path / "meta.json.gz"
    src.write_bytes(b"this is not gzip")
    with pytest.raises(DecodeInitError):
        StreamComposer().open(str(src))


def test_bad_zstd_header(tmp_path):
    src = tmp_path / "meta.bin.zstd"
    src.write_bytes(gzip.compress(BLOB))
    with pytest.raises(DecodeInitError):
        StreamComposer().open(str(src))


def test_missing_plain_source(tmp_path):
    with pytest.raises(SourceNotFoundError):
        StreamComposer().open(str(tmp_path / "missing.json"))


@pytest.mark.parametrize("algorithm", list(Algorithm))
def test_encrypted_gzip_source(tmp_path, seal, key_file, algorithm):
    src = tmp_path / "meta.json.gz"
    seal(src, gzip.compress(BLOB), algorithm=algorithm.value)
    assert gzip.compress(BLOB) not in src.read_bytes()

    with StreamComposer().open(str(src), key=key_file, algorithm=algorithm) as stream:
        assert stream.read() == BLOB


def test_encrypted_relative_path(tmp_path, seal, key_file, monkeypatch):
    seal(tmp_path / "meta.json", BLOB)
    monkeypatch.chdir(tmp_path)
    with StreamComposer().open("meta.json", key=key_file) as stream:
        assert stream.read() == BLOB


def test_encrypted_missing_source(tmp_path, key_file):
    with pytest.raises(SourceNotFoundError):
        StreamComposer().open(str(tmp_path / "missing.json.gz"), key=key_file)


def test_encrypted_with_wrong_key(tmp_path, seal, plain_pem):
    from cryptography.hazmat.primitives.asymmetric import rsa
    other = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    src = tmp_path / "meta.json"
    seal(src, BLOB, key=other)
    with pytest.raises(DecodeInitError):
        StreamComposer().open(str(src), key=plain_pem)


@pytest.mark.parametrize("algorithm", list(Algorithm))
def test_passphrase_checked_before_any_read(tmp_path, encrypted_pem, algorithm):
    # The source does not exist: the passphrase check must fire first
    with pytest.raises(PassphraseRequiredError):
        StreamComposer().open(str(tmp_path / "missing.json.gz"), key=encrypted_pem, algorithm=algorithm)


def test_close_skips_shared_layer():
    calls = []
    layer = RecordingLayer("base", calls)
    stream = ComposedStream(compression_layer=layer, base_layer=layer)
    stream.close()
    stream.close()
    assert calls == ["base"]


def test_close_order_with_distinct_layers():
    calls = []
    stream = ComposedStream(
        compression_layer=RecordingLayer("compression", calls),
        base_layer=RecordingLayer("base", calls),
    )
    stream.close()
    assert calls == ["compression", "base"]
    assert stream.closed


def test_close_releases_file(tmp_path):
    src = tmp_path / "meta.json.gz"
    src.write_bytes(gzip.compress(BLOB))
    stream = StreamComposer().open(str(src))
    base = stream.base_layer
    stream.close()
    assert base.closed
    assert os.path.exists(src)


class FailingLayer(RecordingLayer):
    def close(self):
        super().close()
        raise OSError("flush failed")


def test_close_releases_base_when_compression_close_fails():
    calls = []
    stream = ComposedStream(
        compression_layer=FailingLayer("compression", calls),
        base_layer=RecordingLayer("base", calls),
    )
    with pytest.raises(OSError):
        stream.close()
    assert calls == ["compression", "base"]
    assert stream.closed


def test_directory_source(tmp_path):
    src = tmp_path / "meta.json.gz"
    src.mkdir()
    with pytest.raises(SourceNotFoundError) as exc:
        StreamComposer().open(str(src))
    assert exc.value.path == str(src)


def test_encrypted_directory_source(tmp_path, key_file):
    src = tmp_path / "meta.json.gz"
    src.mkdir()
    with pytest.raises(SourceNotFoundError):
        StreamComposer().open(str(src), key=key_file)


def test_zstd_leading_skippable_frame(tmp_path):
    src = tmp_path / "meta.bin.zstd"
    skippable = b"\x50\x2a\x4d\x18" + (8).to_bytes(4, "little") + b"metadata"
    src.write_bytes(skippable + zstd.ZstdCompressor().compress(BLOB))
    with StreamComposer().open(str(src)) as stream:
        assert stream.read() == BLOB
