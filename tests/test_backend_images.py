"""Tests for backend/images.py - metadata, checksums and validation."""

import hashlib

import pytest

from gosh_usb.backend import ImageNotFoundError, UnsupportedAlgorithmError
from gosh_usb.backend.images import (
    FORMAT_GPT,
    FORMAT_HYBRID_ISO,
    FORMAT_ISO,
    FORMAT_MBR,
    FORMAT_UNKNOWN,
    compute_file_checksum,
    detect_format,
    get_file_info,
    validate_image,
)
from gosh_usb.types import ChecksumAlgorithm

HEADER_SIZE = 0x8001 + 5


def iso_header(*, hybrid: bool = False) -> bytes:
    header = bytearray(HEADER_SIZE)
    header[0x8001:0x8006] = b"CD001"
    if hybrid:
        header[510:512] = b"\x55\xaa"
    return bytes(header)


def write_image(tmp_path, content: bytes, name: str = "image.iso") -> str:
    path = tmp_path / name
    path.write_bytes(content)
    return str(path)


class TestGetFileInfo:
    """Tests for get_file_info function."""

    def test_existing_file(self, tmp_path):
        path = write_image(tmp_path, b"x" * 1536, "debian.iso")
        info = get_file_info(path)

        assert info.path == path
        assert info.name == "debian.iso"
        assert info.size == 1536
        assert info.size_human == "1.5 KB"

    def test_missing_file(self, tmp_path):
        path = str(tmp_path / "missing.iso")
        with pytest.raises(ImageNotFoundError) as exc_info:
            get_file_info(path)

        assert exc_info.value.error_code == "IMAGE_NOT_FOUND"
        assert exc_info.value.message.startswith(f"Failed to read file: {path}")


class TestComputeFileChecksum:
    """Tests for compute_file_checksum function."""

    def test_sha256(self, tmp_path):
        path = write_image(tmp_path, b"hello world")
        assert compute_file_checksum(path) == hashlib.sha256(b"hello world").hexdigest()

    def test_md5(self, tmp_path):
        path = write_image(tmp_path, b"hello world")
        assert (
            compute_file_checksum(path, ChecksumAlgorithm.MD5)
            == "5eb63bbbe01eeed093cb22bb8f5acdc3"
        )

    def test_algorithm_string_case_insensitive(self, tmp_path):
        path = write_image(tmp_path, b"hello world")
        assert compute_file_checksum(path, "MD5") == compute_file_checksum(path, "md5")

    def test_small_blocks_same_digest(self, tmp_path):
        content = bytes(range(256)) * 40
        path = write_image(tmp_path, content)
        assert (
            compute_file_checksum(path, block_size=100)
            == hashlib.sha256(content).hexdigest()
        )

    def test_unsupported_algorithm(self, tmp_path):
        path = write_image(tmp_path, b"data")
        with pytest.raises(UnsupportedAlgorithmError) as exc_info:
            compute_file_checksum(path, "sha1")
        assert exc_info.value.message == "Unsupported algorithm: sha1"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ImageNotFoundError):
            compute_file_checksum(tmp_path / "missing.iso")


class TestDetectFormat:
    """Tests for detect_format function."""

    def test_iso(self):
        assert detect_format(iso_header()) == (FORMAT_ISO, None)

    def test_hybrid_iso(self):
        assert detect_format(iso_header(hybrid=True)) == (FORMAT_HYBRID_ISO, None)

    def test_gpt(self):
        header = bytearray(1024)
        header[510:512] = b"\x55\xaa"
        header[512:520] = b"EFI PART"
        assert detect_format(bytes(header)) == (FORMAT_GPT, None)

    def test_mbr(self):
        header = bytearray(512)
        header[510:512] = b"\x55\xaa"
        assert detect_format(bytes(header)) == (FORMAT_MBR, None)

    @pytest.mark.parametrize(
        "magic,compression",
        [
            (b"\xfd7zXZ\x00", "xz"),
            (b"\x1f\x8b\x08", "gzip"),
            (b"BZh9", "bzip2"),
            (b"\x28\xb5\x2f\xfd", "zstd"),
            (b"PK\x03\x04", "zip"),
        ],
    )
    def test_compressed(self, magic, compression):
        assert detect_format(magic + bytes(100)) == (
            f"Compressed ({compression})",
            compression,
        )

    def test_unknown(self):
        assert detect_format(bytes(64)) == (FORMAT_UNKNOWN, None)

    def test_short_header(self):
        assert detect_format(b"") == (FORMAT_UNKNOWN, None)


class TestValidateImage:
    """Tests for validate_image function."""

    def test_valid_hybrid_iso(self, tmp_path):
        content = iso_header(hybrid=True)
        content += bytes(-len(content) % 512)
        path = write_image(tmp_path, content)

        result = validate_image(path)

        assert result.is_valid is True
        assert result.format == FORMAT_HYBRID_ISO
        assert result.errors == ()
        assert result.warnings == ()

    def test_empty_image(self, tmp_path):
        path = write_image(tmp_path, b"")
        result = validate_image(path)

        assert result.is_valid is False
        assert result.errors == ("Image file is empty",)
        # No format warning for an empty file
        assert result.warnings == ()

    def test_compressed_image(self, tmp_path):
        path = write_image(tmp_path, b"\xfd7zXZ\x00" + bytes(506), "image.iso.xz")
        result = validate_image(path)

        assert result.is_valid is False
        assert result.format == "Compressed (xz)"
        assert result.errors == (
            "Image is xz-compressed and must be decompressed before writing",
        )

    def test_unknown_format_warns(self, tmp_path):
        path = write_image(tmp_path, bytes(1024))
        result = validate_image(path)

        assert result.is_valid is True
        assert result.format == FORMAT_UNKNOWN
        assert result.warnings == (
            "Unrecognised image format; the drive may not be bootable",
        )

    def test_unaligned_size_warns(self, tmp_path):
        header = bytearray(1000)
        header[510:512] = b"\x55\xaa"
        path = write_image(tmp_path, bytes(header))
        result = validate_image(path)

        assert result.is_valid is True
        assert result.format == FORMAT_MBR
        assert result.warnings == ("Image size is not a multiple of 512 bytes",)

    def test_exceeds_device(self, tmp_path):
        header = bytearray(2048)
        header[510:512] = b"\x55\xaa"
        path = write_image(tmp_path, bytes(header))

        result = validate_image(path, device_size=1024)

        assert result.is_valid is False
        assert result.errors == (
            "Image size (2.0 KB) exceeds device capacity (1.0 KB)",
        )

    def test_fits_device(self, tmp_path):
        header = bytearray(2048)
        header[510:512] = b"\x55\xaa"
        path = write_image(tmp_path, bytes(header))
        assert validate_image(path, device_size=2048).is_valid is True

    def test_missing_file(self, tmp_path):
        with pytest.raises(ImageNotFoundError):
            validate_image(str(tmp_path / "missing.iso"))
