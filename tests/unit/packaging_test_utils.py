from __future__ import annotations

import io
import json
import tarfile
from pathlib import Path
from typing import Iterable
from urllib.error import HTTPError
from zipfile import ZIP_DEFLATED, ZipFile, ZipInfo

import pytest

from app.config import AppConfig, load_app_config
from services.packaging.platforms import PLATFORMS, PlatformDescriptor

VERSION = "1.2.3"


class FakeResponse(io.BytesIO):
    def __init__(self, payload: bytes, status: int = 200) -> None:
        super().__init__(payload)
        self.status = status

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def binary_payload(descriptor: PlatformDescriptor) -> bytes:
    return f"#!/bin/sh\necho crush {descriptor.npm_platform}\n".encode("utf-8")


def build_tar_gz(entries: dict[str, bytes], *, mode: int = 0o755) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for name, content in entries.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = mode
            archive.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


def build_zip(entries: dict[str, bytes], *, mode: int = 0o755) -> bytes:
    buffer = io.BytesIO()
    with ZipFile(buffer, "w", compression=ZIP_DEFLATED) as archive:
        for name, content in entries.items():
            info = ZipInfo(name)
            info.external_attr = (0o100000 | mode) << 16
            info.compress_type = ZIP_DEFLATED
            archive.writestr(info, content)
    return buffer.getvalue()


def layout_entries(descriptor: PlatformDescriptor, layout: str, version: str = VERSION) -> dict[str, bytes]:
    """Archive members for ``descriptor`` arranged in one of the known layouts."""

    binary = descriptor.binary_name("crush")
    folder = f"crush_{version}_{descriptor.archive_suffix}"
    payload = binary_payload(descriptor)
    extras = {"LICENSE": b"FSL-1.1-MIT\n", "README.md": b"# Crush\n"}
    if layout == "nested":
        return {f"{folder}/{binary}": payload, **{f"{folder}/{k}": v for k, v in extras.items()}}
    if layout == "root":
        return {binary: payload, **extras}
    if layout == "deep":
        return {
            f"unexpected/deeper/{binary}": payload,
            **{f"unexpected/{k}": v for k, v in extras.items()},
        }
    if layout == "missing":
        return dict(extras)
    raise ValueError(layout)


def build_archive(descriptor: PlatformDescriptor, layout: str = "nested", version: str = VERSION) -> bytes:
    entries = layout_entries(descriptor, layout, version)
    if descriptor.is_windows:
        return build_zip(entries)
    return build_tar_gz(entries)


def release_payloads(
    config: AppConfig,
    *,
    version: str = VERSION,
    layout: str = "nested",
    platforms: Iterable[PlatformDescriptor] = PLATFORMS,
) -> dict[str, bytes]:
    payloads: dict[str, bytes] = {}
    for descriptor in platforms:
        archive_name = descriptor.archive_name(config.release.archive_prefix, version)
        payloads[config.release.download_url(version, archive_name)] = build_archive(
            descriptor, layout, version
        )
    return payloads


def install_fake_urlopen(
    monkeypatch: pytest.MonkeyPatch, payloads: dict[str, bytes]
) -> list[str]:
    """Serve ``payloads`` by URL; unknown URLs answer HTTP 404."""

    requested: list[str] = []

    def fake_urlopen(url: str, timeout: float | None = None) -> FakeResponse:
        requested.append(url)
        payload = payloads.get(url)
        if payload is None:
            raise HTTPError(url, 404, "Not Found", None, None)  # type: ignore[arg-type]
        return FakeResponse(payload)

    monkeypatch.setattr("services.packaging.download.urlopen", fake_urlopen)
    return requested


def write_root_manifest(path: Path, version: str = "0.1.0") -> Path:
    manifest = {
        "name": "@offlinecli/crush",
        "version": version,
        "description": "Crush for offline registries",
        "optionalDependencies": {
            f"@offlinecli/crush-{descriptor.npm_platform}": version for descriptor in PLATFORMS
        },
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(manifest, indent=2) + "\n", encoding="utf-8")
    return path


def default_config() -> AppConfig:
    return load_app_config()


__all__ = [
    "FakeResponse",
    "VERSION",
    "binary_payload",
    "build_archive",
    "build_tar_gz",
    "build_zip",
    "default_config",
    "install_fake_urlopen",
    "layout_entries",
    "release_payloads",
    "write_root_manifest",
]
