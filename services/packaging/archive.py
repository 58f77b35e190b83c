"""Archive handling for upstream release downloads.

Upstream archives do not promise a stable layout, so the binary is looked up
with an ordered chain of strategies:

1. ``nested``: the binary sits one folder deep (``crush_1.2.3_Linux_x86_64/crush``).
2. ``root``: the binary sits at the archive root.
3. ``search``: everything is extracted into a scratch folder, the binary is
   found by name at any depth, moved into place and the scratch folder removed.

Each strategy returns a :class:`~shared.result.Result` and can be exercised on
its own.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import tarfile
import zipfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import IO, Iterator, Protocol

from services.packaging.models import ExtractionError
from shared.result import Attempt, Result, first_ok


_LOGGER = logging.getLogger(__name__)

MAX_ARCHIVE_TOTAL_BYTES = 1024 * 1024 * 1024  # 1 GiB
MAX_ARCHIVE_FILE_SIZE = 512 * 1024 * 1024  # 512 MiB per file
MAX_ARCHIVE_ENTRIES = 5000
MAX_COMPRESSION_RATIO = 100  # Uncompressed vs compressed bytes

SCRATCH_DIRNAME = ".extract"
EXECUTABLE_MODE = 0o755

StrategyResult = Result[Path, str]


@dataclass(frozen=True)
class ArchiveMember:
    """A regular file or directory entry inside a release archive."""

    name: str
    size: int
    is_dir: bool
    compressed_size: int | None = None
    mode: int | None = None

    @property
    def parts(self) -> tuple[str, ...]:
        return tuple(
            part for part in PurePosixPath(self.name.replace("\\", "/")).parts if part not in {"", "."}
        )

    @property
    def basename(self) -> str:
        parts = self.parts
        return parts[-1] if parts else ""


class ArchiveReader(Protocol):
    """Uniform read access to zip and tar archives."""

    def members(self) -> list[ArchiveMember]:
        """Return the directory and regular-file entries of the archive."""

    def open_member(self, member: ArchiveMember) -> IO[bytes]:
        """Return a binary stream with ``member``'s contents."""


class ZipArchiveReader:
    def __init__(self, archive: zipfile.ZipFile) -> None:
        self._archive = archive

    def members(self) -> list[ArchiveMember]:
        entries: list[ArchiveMember] = []
        for info in self._archive.infolist():
            if not info.filename:
                continue
            mode = (info.external_attr >> 16) & 0o7777 or None
            entries.append(
                ArchiveMember(
                    name=info.filename,
                    size=info.file_size,
                    is_dir=info.is_dir(),
                    compressed_size=info.compress_size,
                    mode=mode,
                )
            )
        return entries

    def open_member(self, member: ArchiveMember) -> IO[bytes]:
        return self._archive.open(member.name)


class TarArchiveReader:
    def __init__(self, archive: tarfile.TarFile) -> None:
        self._archive = archive
        self._infos: dict[str, tarfile.TarInfo] = {}

    def members(self) -> list[ArchiveMember]:
        entries: list[ArchiveMember] = []
        for info in self._archive.getmembers():
            if not (info.isfile() or info.isdir()):
                _LOGGER.debug("Ignoring non-regular archive entry %s", info.name)
                continue
            self._infos[info.name] = info
            entries.append(
                ArchiveMember(name=info.name, size=info.size, is_dir=info.isdir(), mode=info.mode)
            )
        return entries

    def open_member(self, member: ArchiveMember) -> IO[bytes]:
        info = self._infos.get(member.name) or self._archive.getmember(member.name)
        stream = self._archive.extractfile(info)
        if stream is None:
            raise OSError(f"Archive entry {member.name} has no file data")
        return stream


@contextmanager
def open_archive(archive_path: Path) -> Iterator[ArchiveReader]:
    """Open ``archive_path`` as zip or gzip-compressed tar based on its name."""

    name = archive_path.name.lower()
    try:
        if name.endswith(".zip"):
            with zipfile.ZipFile(archive_path) as archive:
                yield ZipArchiveReader(archive)
        elif name.endswith((".tar.gz", ".tgz")):
            with tarfile.open(archive_path, mode="r:gz") as archive:
                yield TarArchiveReader(archive)
        else:
            raise ExtractionError(f"Unsupported archive format: {archive_path.name}", archive=archive_path)
    except (OSError, zipfile.BadZipFile, tarfile.TarError, EOFError) as exc:
        raise ExtractionError(f"Failed to read archive {archive_path.name}: {exc}", archive=archive_path) from exc


def extract_binary(
    archive_path: Path,
    binary_name: str,
    package_dir: Path,
    *,
    target_name: str | None = None,
) -> Path:
    """Extract ``binary_name`` from ``archive_path`` into ``package_dir/bin``.

    The file is stored as ``target_name`` (defaults to ``binary_name``).
    Raises :class:`ExtractionError` when every strategy fails.
    """

    bin_dir = package_dir / "bin"
    bin_dir.mkdir(parents=True, exist_ok=True)
    destination = bin_dir / (target_name or binary_name)

    with open_archive(archive_path) as reader:
        members = reader.members()
        outcome = first_ok(
            [
                Attempt("nested", lambda: extract_nested_binary(reader, members, binary_name, destination)),
                Attempt("root", lambda: extract_root_binary(reader, members, binary_name, destination)),
                Attempt(
                    "search",
                    lambda: extract_by_search(
                        reader, members, binary_name, destination, package_dir / SCRATCH_DIRNAME
                    ),
                ),
            ]
        )

    for strategy, reason in outcome.failures:
        _LOGGER.debug("Extraction strategy %s failed for %s: %s", strategy, archive_path.name, reason)
    if outcome.result.is_err():
        raise ExtractionError(
            f"Could not locate {binary_name} in {archive_path.name}: {outcome.result.error}",
            archive=archive_path,
            attempts=tuple(name for name, _ in outcome.failures),
        )
    _LOGGER.debug("Extracted %s via %s strategy", destination, outcome.winner)
    return outcome.result.unwrap()


def extract_nested_binary(
    reader: ArchiveReader, members: list[ArchiveMember], binary_name: str, destination: Path
) -> StrategyResult:
    """Extract ``<folder>/<binary_name>`` from the archive."""

    for member in members:
        if not member.is_dir and len(member.parts) == 2 and member.basename == binary_name:
            return _write_member(reader, member, destination)
    return Result.err(f"no */{binary_name} entry")


def extract_root_binary(
    reader: ArchiveReader, members: list[ArchiveMember], binary_name: str, destination: Path
) -> StrategyResult:
    """Extract ``<binary_name>`` stored at the archive root."""

    for member in members:
        if not member.is_dir and member.parts == (binary_name,):
            return _write_member(reader, member, destination)
    return Result.err(f"no top-level {binary_name} entry")


def extract_by_search(
    reader: ArchiveReader,
    members: list[ArchiveMember],
    binary_name: str,
    destination: Path,
    scratch_dir: Path,
) -> StrategyResult:
    """Extract everything, find ``binary_name`` at any depth and relocate it.

    ``scratch_dir`` is removed afterwards whether or not the search succeeds,
    so no other extracted entries remain next to the package.
    """

    try:
        try:
            extract_all_safely(reader, members, scratch_dir)
        except ExtractionError as exc:
            return Result.err(str(exc))
        except OSError as exc:
            return Result.err(f"extraction failed: {exc}")

        found = find_file_by_name(scratch_dir, binary_name)
        if found is None:
            return Result.err(f"{binary_name} not found at any depth")
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(found), str(destination))
        _LOGGER.debug("Relocated %s to %s", found, destination)
        return Result.ok(destination)
    finally:
        shutil.rmtree(scratch_dir, ignore_errors=True)


def extract_all_safely(reader: ArchiveReader, members: list[ArchiveMember], target_dir: Path) -> None:
    """Extract every member into ``target_dir`` while enforcing safety limits."""

    target_dir.mkdir(parents=True, exist_ok=True)
    root = target_dir.resolve()
    total_bytes = 0
    processed_entries = 0
    for member in members:
        processed_entries += 1
        if processed_entries > MAX_ARCHIVE_ENTRIES:
            _LOGGER.error(
                "Archive entry count %s exceeded limit %s", processed_entries, MAX_ARCHIVE_ENTRIES
            )
            raise ExtractionError("Archive contained too many entries")
        destination = _safe_destination(root, member)
        if member.is_dir:
            destination.mkdir(parents=True, exist_ok=True)
            continue
        _check_member_limits(member)
        total_bytes += member.size
        if total_bytes > MAX_ARCHIVE_TOTAL_BYTES:
            _LOGGER.error(
                "Archive expanded to %s bytes which exceeds limit %s",
                total_bytes,
                MAX_ARCHIVE_TOTAL_BYTES,
            )
            raise ExtractionError("Archive expanded beyond safe limits")
        _copy_member(reader, member, destination)

    _LOGGER.debug("Extracted %s entries totalling %s bytes", processed_entries, total_bytes)


def find_file_by_name(directory: Path, file_name: str) -> Path | None:
    """Return the shallowest regular file called ``file_name`` under ``directory``."""

    candidates = [path for path in directory.rglob(file_name) if path.is_file()]
    if not candidates:
        return None

    def _sort_key(path: Path) -> tuple[int, str]:
        return (len(path.relative_to(directory).parts), str(path))

    candidates.sort(key=_sort_key)
    return candidates[0]


def make_executable(path: Path) -> bool:
    """Best-effort ``chmod +x``; returns ``False`` when the mode could not be set."""

    try:
        current = path.stat().st_mode
        path.chmod(stat.S_IMODE(current) | EXECUTABLE_MODE)
    except OSError as exc:
        _LOGGER.debug("Could not mark %s executable: %s", path, exc)
        return False
    return True


def _write_member(reader: ArchiveReader, member: ArchiveMember, destination: Path) -> StrategyResult:
    try:
        _check_member_limits(member)
        _copy_member(reader, member, destination)
    except ExtractionError as exc:
        return Result.err(str(exc))
    except OSError as exc:
        _discard(destination)
        return Result.err(f"failed to write {member.name}: {exc}")
    return Result.ok(destination)


def _copy_member(reader: ArchiveReader, member: ArchiveMember, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    with reader.open_member(member) as source, destination.open("wb") as target:
        shutil.copyfileobj(source, target)
    if member.mode:
        try:
            os.chmod(destination, member.mode & 0o777)
        except OSError:
            _LOGGER.debug("Could not apply archived mode to %s", destination)
    _LOGGER.debug("Extracted archive member %s to %s", member.name, destination)


def _safe_destination(root: Path, member: ArchiveMember) -> Path:
    raw = member.name.replace("\\", "/")
    if raw.startswith("/") or PurePosixPath(raw).is_absolute() or (len(raw) > 1 and raw[1] == ":"):
        raise ExtractionError("Archive contained an absolute path entry")
    destination = root.joinpath(*member.parts).resolve()
    try:
        destination.relative_to(root)
    except ValueError:
        raise ExtractionError("Archive contained an unsafe relative path")
    return destination


def _check_member_limits(member: ArchiveMember) -> None:
    if member.size > MAX_ARCHIVE_FILE_SIZE:
        _LOGGER.error(
            "Archive member %s exceeded file size limit (%s > %s)",
            member.name,
            member.size,
            MAX_ARCHIVE_FILE_SIZE,
        )
        raise ExtractionError("Archive contained an oversized file")
    compressed = member.compressed_size
    if compressed is None:
        return
    if compressed == 0 and member.size > 0:
        _LOGGER.error("Archive member %s reported zero compression size", member.name)
        raise ExtractionError("Archive contained a suspiciously compressed file")
    if compressed > 0 and member.size > compressed * MAX_COMPRESSION_RATIO:
        _LOGGER.error(
            "Archive member %s exceeded compression ratio limit (%s > %s)",
            member.name,
            member.size,
            compressed * MAX_COMPRESSION_RATIO,
        )
        raise ExtractionError("Archive exceeded safe compression ratio")


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except OSError:
        pass


__all__ = [
    "ArchiveMember",
    "ArchiveReader",
    "MAX_ARCHIVE_ENTRIES",
    "MAX_ARCHIVE_FILE_SIZE",
    "MAX_ARCHIVE_TOTAL_BYTES",
    "MAX_COMPRESSION_RATIO",
    "SCRATCH_DIRNAME",
    "extract_all_safely",
    "extract_binary",
    "extract_by_search",
    "extract_nested_binary",
    "extract_root_binary",
    "find_file_by_name",
    "make_executable",
    "open_archive",
]
