"""Reading the text inputs of ssgd, pattern, taxa and json files. Any of
these may be compressed with gzip, bzip2, xz or zip."""

import bz2
import contextlib
import gzip
import lzma
import zipfile
from io import TextIOWrapper
from os import PathLike
from pathlib import Path, PurePath
from typing import IO, Iterator, Optional, Union

from chardet import detect

PathType = Union[str, PathLike, PurePath]

# bytes read to guess a text encoding
_ENCODING_SAMPLE = 4096


def _open_zip(path: PathType, mode: str = "rb") -> IO:
    """binary stream of the only member of a zip archive"""
    with zipfile.ZipFile(path) as archive:
        names = archive.namelist()
        if len(names) != 1:
            raise ValueError(f"{path} must hold one file, not {len(names)}")
        return archive.open(names[0])


_decompressors = {
    "gz": gzip.open,
    "bz2": bz2.open,
    "xz": lzma.open,
    "lzma": lzma.open,
    "zip": _open_zip,
}


def compression_suffix(path: PathType) -> Optional[str]:
    """the lower case compression suffix of path, None if not compressed"""
    suffix = Path(path).suffix.lower().lstrip(".")
    return suffix if suffix in _decompressors else None


def _detect_encoding(path: Path, opener) -> str:
    with opener(path, "rb") as infile:
        sample = infile.read(_ENCODING_SAMPLE)
    encoding = detect(sample)["encoding"] or "utf-8"
    # chardet reports ascii for the plain files we expect
    return "utf-8" if encoding == "ascii" else encoding


def open_(path: PathType, mode: str = "rt", encoding: Optional[str] = None) -> IO:
    """opens path for reading, decompressing according to its suffix

    Parameters
    ----------
    path
        file path
    mode
        'rt' (or 'r') for text, 'rb' for bytes
    encoding
        text encoding, detected with chardet if not provided

    Returns
    -------
    an object compatible with the file protocol
    """
    if not path:
        raise ValueError(f"{path!r} not a valid file name")
    if mode not in ("r", "rt", "rb"):
        raise ValueError(f"files are opened for reading only, not mode {mode!r}")

    path = Path(path).expanduser()
    opener = _decompressors.get(compression_suffix(path), open)
    if mode == "rb":
        return opener(path, "rb")
    if encoding is None:
        encoding = _detect_encoding(path, opener)
    return TextIOWrapper(opener(path, "rb"), encoding=encoding)


def path_exists(path: PathType) -> bool:
    """whether path is a valid path and it exists"""
    with contextlib.suppress(TypeError, ValueError, OSError):
        return Path(path).exists()
    return False


def iter_splitlines(
    path: PathType, chunk_size: Optional[int] = 1_000_000
) -> Iterator[str]:
    """yields the lines of path without their line endings

    Parameters
    ----------
    path
        data file
    chunk_size
        number of characters read at a time, None reads the whole file
    """
    with open_(path) as infile:
        remainder = ""
        while data := infile.read(chunk_size or -1):
            lines = (remainder + data).split("\n")
            remainder = lines.pop()
            yield from lines
        if remainder:
            yield remainder
