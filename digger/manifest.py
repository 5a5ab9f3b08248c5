"""Strict and salvage parsers for the package manifest (``Cargo.toml``).

The strict parser knows the full published ``[package]`` schema and rejects
unknown keys. The salvage parser only needs ``name`` and ``version`` and is
used to attribute a strict-parse failure to a package.
"""

import logging
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class ManifestError(Exception):
    """A manifest could not be read or did not match the schema."""


class Package(BaseModel):
    """The ``[package]`` table of a published manifest."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str
    version: str
    edition: str | None = None
    authors: list[str] | None = None
    description: str | None = None
    readme: str | None = None
    license: str | None = None
    repository: str | None = None
    homepage: str | None = None
    documentation: str | None = None
    build: Any = None
    resolver: str | None = None
    links: str | None = None
    default_dash_run: str | None = Field(default=None, alias="default-run")

    # Both spellings occur in the wild and are kept apart.
    rust_version: str | None = None
    rust_dash_version: str | None = Field(default=None, alias="rust-version")

    license_dash_file: str | None = Field(default=None, alias="license-file")
    license_file: str | None = None
    license_capital_file: str | None = Field(default=None, alias="licenseFile")
    forced_dash_target: str | None = Field(default=None, alias="forced-target")

    autobins: bool | None = None
    autotests: bool | None = None
    autoexamples: bool | None = None
    autobenches: bool | None = None

    publish: Any = None
    metadata: Any = None
    keywords: list[str] | None = None
    categories: list[str] | None = None
    exclude: list[str] | None = None
    include: list[str] | None = None


class Cargo(BaseModel):
    """A strictly parsed manifest."""

    package: Package
    dependencies: dict[str, Any] | None = None

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class SimplePackage(BaseModel):
    name: str
    version: str


class SimpleCargo(BaseModel):
    package: SimplePackage


def _load_toml(content: str) -> dict:
    try:
        return tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise ManifestError(f"TOML parse error: {e}") from e


def parse_manifest(content: str) -> Cargo:
    """Strict parse of manifest text."""
    data = _load_toml(content)
    try:
        return Cargo.model_validate(data)
    except ValidationError as e:
        raise ManifestError(str(e)) from e


def parse_name_version(content: str) -> tuple[str, str]:
    """Salvage parse: extract only ``(name, version)`` from manifest text."""
    data = _load_toml(content)
    try:
        parsed = SimpleCargo.model_validate(data)
    except ValidationError as e:
        raise ManifestError(str(e)) from e
    return parsed.package.name, parsed.package.version


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestError(f"Could not read {path}: {e}") from e


def load_manifest(path: Path) -> Cargo:
    logger.debug("load_manifest %s", path)
    return parse_manifest(_read(path))


def load_name_version(path: Path) -> tuple[str, str]:
    logger.debug("load_name_version %s", path)
    return parse_name_version(_read(path))
