from __future__ import annotations

from dataclasses import dataclass, field
import logging
import struct
from typing import Optional, Sequence, Union

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
IHDR_LENGTH = 13
IHDR_TYPE = b"IHDR"
MIN_PNG_HEADER_BYTES = 24

ICO_HEADER = struct.Struct("<HHH")
ICO_DIRECTORY_ENTRY = struct.Struct("<BBBBHHII")
ICO_TYPE_ICON = 1
ICO_TYPE_CURSOR = 2
MAX_DIMENSION = 256
MAX_IMAGES = 256
COLOR_PLANES = 1
BITS_PER_PIXEL = 32

BytesLike = Union[bytes, bytearray, memoryview]


class IcoError(ValueError):
    """Base class for every ICO validation failure."""

    def __init__(self, reason: str, index: Optional[int] = None) -> None:
        self.reason = reason
        self.index = index
        if index is None:
            message = reason
        else:
            message = f"image #{index}: {reason}"
        super().__init__(message)


class InvalidBufferTypeError(IcoError):
    pass


class TruncatedPngError(IcoError):
    pass


class PngSignatureError(IcoError):
    pass


class PngStructureError(IcoError):
    pass


class ImageDimensionError(IcoError):
    pass


class ImageCountError(IcoError):
    pass


class InvalidIcoError(IcoError):
    pass


@dataclass(frozen=True)
class PngImageInfo:
    buffer: bytes = field(repr=False)
    width: int
    height: int
    size: int
    index: int


@dataclass(frozen=True)
class IcoWarning:
    index: int
    first_index: int
    width: int
    height: int
    message: str


@dataclass(frozen=True)
class IcoEncodeResult:
    data: bytes = field(repr=False)
    images: list[PngImageInfo]
    warnings: list[IcoWarning]


@dataclass(frozen=True)
class IcoImageEntry:
    width: int
    height: int
    size: int
    offset: int
    color_count: int = 0
    planes: int = COLOR_PLANES
    bit_count: int = BITS_PER_PIXEL


@dataclass(frozen=True)
class IcoInfo:
    image_count: int
    type: int
    images: list[IcoImageEntry]


def _as_bytes(buffer: object, index: int) -> bytes:
    if isinstance(buffer, bytes):
        return buffer
    if isinstance(buffer, (bytearray, memoryview)):
        return bytes(buffer)
    raise InvalidBufferTypeError(
        f"expected bytes-like PNG data, got {type(buffer).__name__}",
        index,
    )


def validate_png(buffer: BytesLike, index: int) -> PngImageInfo:
    """Check the PNG signature and IHDR header and read the image dimensions.

    Only the first 24 bytes are inspected; pixel data is never decoded.
    ``index`` is 1-based and only used for error reporting.
    """
    data = _as_bytes(buffer, index)

    if len(data) < MIN_PNG_HEADER_BYTES:
        raise TruncatedPngError(
            f"PNG data too short ({len(data)} bytes, need at least {MIN_PNG_HEADER_BYTES})",
            index,
        )
    if data[:8] != PNG_SIGNATURE:
        raise PngSignatureError("invalid PNG signature", index)

    chunk_length, chunk_type = struct.unpack_from(">I4s", data, 8)
    if chunk_length != IHDR_LENGTH:
        raise PngStructureError(
            f"IHDR chunk length is {chunk_length}, expected {IHDR_LENGTH}",
            index,
        )
    if chunk_type != IHDR_TYPE:
        raise PngStructureError(
            f"first chunk is {chunk_type!r}, expected {IHDR_TYPE!r}",
            index,
        )

    width, height = struct.unpack_from(">II", data, 16)
    if width == 0 or height == 0:
        raise ImageDimensionError(f"invalid dimensions {width}x{height}", index)
    if width > MAX_DIMENSION or height > MAX_DIMENSION:
        raise ImageDimensionError(
            f"dimensions {width}x{height} exceed the ICO maximum of "
            f"{MAX_DIMENSION}x{MAX_DIMENSION}",
            index,
        )

    return PngImageInfo(
        buffer=data,
        width=width,
        height=height,
        size=len(data),
        index=index,
    )


def _encode_dimension(value: int) -> int:
    # a single byte holds the dimension, 0 stands for 256
    return 0 if value == MAX_DIMENSION else value


def _decode_dimension(value: int) -> int:
    return MAX_DIMENSION if value == 0 else value


def build_directory_entry(info: PngImageInfo, offset: int) -> bytes:
    return ICO_DIRECTORY_ENTRY.pack(
        _encode_dimension(info.width),
        _encode_dimension(info.height),
        0,
        0,
        COLOR_PLANES,
        BITS_PER_PIXEL,
        info.size,
        offset,
    )


def _find_duplicates(images: Sequence[PngImageInfo]) -> list[IcoWarning]:
    seen: dict[tuple[int, int], int] = {}
    warnings: list[IcoWarning] = []
    for info in images:
        key = (info.width, info.height)
        first_index = seen.get(key)
        if first_index is None:
            seen[key] = info.index
            continue
        warnings.append(
            IcoWarning(
                index=info.index,
                first_index=first_index,
                width=info.width,
                height=info.height,
                message=(
                    f"image #{info.index} duplicates the {info.width}x{info.height} "
                    f"dimensions of image #{first_index}"
                ),
            )
        )
    return warnings


def encode_ico(buffers: Sequence[BytesLike]) -> IcoEncodeResult:
    """Pack PNG streams into a single ICO document.

    Images keep their input order in both the directory and the payload
    section. Any invalid image aborts the whole batch. Repeated dimensions
    are allowed and reported through ``IcoEncodeResult.warnings``.
    """
    count = len(buffers)
    if count == 0:
        raise ImageCountError("at least one PNG image is required")
    if count > MAX_IMAGES:
        raise ImageCountError(
            f"too many images ({count}), an ICO holds at most {MAX_IMAGES}"
        )

    images = [validate_png(buffer, i) for i, buffer in enumerate(buffers, start=1)]
    warnings = _find_duplicates(images)

    header = ICO_HEADER.pack(0, ICO_TYPE_ICON, count)
    offset = ICO_HEADER.size + ICO_DIRECTORY_ENTRY.size * count
    entries = []
    for info in images:
        entries.append(build_directory_entry(info, offset))
        offset += info.size

    data = b"".join([header, *entries, *(info.buffer for info in images)])
    return IcoEncodeResult(data=data, images=images, warnings=warnings)


def png_to_ico(
    buffers: Sequence[BytesLike],
    logger: Optional[logging.Logger] = None,
) -> bytes:
    log = logger or logging.getLogger("favigen")
    result = encode_ico(buffers)
    for warning in result.warnings:
        log.warning("ICO: %s", warning.message)
    return result.data


def is_valid_ico(data: object) -> bool:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        return False
    if len(data) < ICO_HEADER.size:
        return False
    reserved, ico_type, count = ICO_HEADER.unpack_from(data, 0)
    if reserved != 0:
        return False
    if ico_type not in (ICO_TYPE_ICON, ICO_TYPE_CURSOR):
        return False
    return 0 < count <= MAX_IMAGES


def get_ico_info(data: BytesLike) -> IcoInfo:
    """Read the header and directory of an ICO document.

    Entries that would run past the end of ``data`` are dropped. Payload
    bytes are not read or checked.
    """
    if not is_valid_ico(data):
        raise InvalidIcoError("not a valid ICO document")

    _, ico_type, count = ICO_HEADER.unpack_from(data, 0)
    images: list[IcoImageEntry] = []
    for i in range(count):
        start = ICO_HEADER.size + i * ICO_DIRECTORY_ENTRY.size
        if start + ICO_DIRECTORY_ENTRY.size > len(data):
            break
        (
            width,
            height,
            color_count,
            _reserved,
            planes,
            bit_count,
            size,
            offset,
        ) = ICO_DIRECTORY_ENTRY.unpack_from(data, start)
        images.append(
            IcoImageEntry(
                width=_decode_dimension(width),
                height=_decode_dimension(height),
                size=size,
                offset=offset,
                color_count=color_count,
                planes=planes,
                bit_count=bit_count,
            )
        )

    return IcoInfo(image_count=count, type=ico_type, images=images)
