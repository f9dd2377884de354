"""Source image inspection for the local backend.

This module handles read-only operations on image files:
- Resolve file metadata (name, size)
- Compute SHA-256 / MD5 digests
- Detect the image format and flag problems before writing
"""

import hashlib
import logging
from pathlib import Path

from gosh_usb.backend.base import ImageNotFoundError, UnsupportedAlgorithmError
from gosh_usb.backend.formatting import format_size
from gosh_usb.backend.models import FileInfo, ImageValidation
from gosh_usb.types import ChecksumAlgorithm

logger = logging.getLogger(__name__)

# Default block size for hashing (8 MiB)
DEFAULT_CHECKSUM_BLOCK_SIZE = 8 * 1024 * 1024

# Format signatures
ISO9660_MAGIC = b"CD001"
ISO9660_OFFSET = 0x8001
MBR_SIGNATURE = b"\x55\xaa"
MBR_SIGNATURE_OFFSET = 510
GPT_MAGIC = b"EFI PART"
GPT_OFFSET = 512

COMPRESSED_SIGNATURES = (
    (b"\xfd7zXZ\x00", "xz"),
    (b"\x1f\x8b", "gzip"),
    (b"BZh", "bzip2"),
    (b"\x28\xb5\x2f\xfd", "zstd"),
    (b"PK\x03\x04", "zip"),
)

FORMAT_ISO = "ISO 9660"
FORMAT_HYBRID_ISO = "ISO 9660 (hybrid)"
FORMAT_GPT = "Raw disk image (GPT)"
FORMAT_MBR = "Raw disk image (MBR)"
FORMAT_UNKNOWN = "Unknown"

# Bytes needed to see every signature above
_HEADER_SIZE = ISO9660_OFFSET + len(ISO9660_MAGIC)


def get_file_info(path: str) -> FileInfo:
    """Resolve metadata for an image file.

    Raises:
        ImageNotFoundError: The file does not exist or cannot be stat'ed.
    """
    file_path = Path(path)
    try:
        size = file_path.stat().st_size
    except OSError as e:
        raise ImageNotFoundError(path, e.strerror) from e

    return FileInfo(
        path=path,
        name=file_path.name or path,
        size=size,
        size_human=format_size(size),
    )


def compute_file_checksum(
    path: str | Path,
    algorithm: ChecksumAlgorithm | str = ChecksumAlgorithm.SHA256,
    block_size: int = DEFAULT_CHECKSUM_BLOCK_SIZE,
) -> str:
    """Compute the hex digest of a file.

    Args:
        path: File to hash.
        algorithm: 'sha256' or 'md5' (case-insensitive).
        block_size: Read size per iteration.

    Returns:
        Lowercase hex digest.

    Raises:
        UnsupportedAlgorithmError: Unknown algorithm.
        ImageNotFoundError: The file cannot be read.
    """
    if not isinstance(algorithm, ChecksumAlgorithm):
        try:
            algorithm = ChecksumAlgorithm(algorithm.lower())
        except ValueError:
            raise UnsupportedAlgorithmError(algorithm) from None

    hasher = hashlib.new(algorithm.value)
    try:
        with open(path, "rb") as f:
            while True:
                chunk = f.read(block_size)
                if not chunk:
                    break
                hasher.update(chunk)
    except OSError as e:
        raise ImageNotFoundError(str(path), e.strerror) from e

    digest = hasher.hexdigest()
    logger.debug("%s of %s: %s", algorithm.value, path, digest)
    return digest


def _read_header(path: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read(_HEADER_SIZE)
    except OSError as e:
        raise ImageNotFoundError(path, e.strerror) from e


def detect_format(header: bytes) -> tuple[str, str | None]:
    """Detect the image format from its leading bytes.

    Returns:
        Tuple of (format label, compression name or None).
    """
    for magic, compression in COMPRESSED_SIGNATURES:
        if header.startswith(magic):
            return f"Compressed ({compression})", compression

    has_mbr = (
        header[MBR_SIGNATURE_OFFSET : MBR_SIGNATURE_OFFSET + 2] == MBR_SIGNATURE
    )
    is_iso = (
        header[ISO9660_OFFSET : ISO9660_OFFSET + len(ISO9660_MAGIC)] == ISO9660_MAGIC
    )

    if is_iso:
        return (FORMAT_HYBRID_ISO if has_mbr else FORMAT_ISO), None
    if header[GPT_OFFSET : GPT_OFFSET + len(GPT_MAGIC)] == GPT_MAGIC:
        return FORMAT_GPT, None
    if has_mbr:
        return FORMAT_MBR, None
    return FORMAT_UNKNOWN, None


def validate_image(path: str, device_size: int | None = None) -> ImageValidation:
    """Validate an image before writing.

    Args:
        path: Image file to inspect.
        device_size: Size of the target device in bytes, if one is selected.

    Returns:
        ImageValidation verdict; ``is_valid`` is False when any error is found.

    Raises:
        ImageNotFoundError: The file cannot be read.
    """
    info = get_file_info(path)
    errors: list[str] = []
    warnings: list[str] = []

    label, compression = detect_format(_read_header(path))

    if info.size == 0:
        errors.append("Image file is empty")
    if compression is not None:
        errors.append(
            f"Image is {compression}-compressed and must be decompressed before writing"
        )
    elif label == FORMAT_UNKNOWN and info.size > 0:
        warnings.append("Unrecognised image format; the drive may not be bootable")

    if info.size % 512 != 0:
        warnings.append("Image size is not a multiple of 512 bytes")

    if device_size is not None and info.size > device_size:
        errors.append(
            f"Image size ({info.size_human}) exceeds device capacity "
            f"({format_size(device_size)})"
        )

    logger.info(
        "Validated %s: format=%s, errors=%d, warnings=%d",
        info.name,
        label,
        len(errors),
        len(warnings),
    )

    return ImageValidation(
        is_valid=not errors,
        format=label,
        errors=tuple(errors),
        warnings=tuple(warnings),
    )


__all__ = [
    "DEFAULT_CHECKSUM_BLOCK_SIZE",
    "FORMAT_GPT",
    "FORMAT_HYBRID_ISO",
    "FORMAT_ISO",
    "FORMAT_MBR",
    "FORMAT_UNKNOWN",
    "compute_file_checksum",
    "detect_format",
    "get_file_info",
    "validate_image",
]
