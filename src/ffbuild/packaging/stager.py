"""Stager: assemble an isolated package root from the staged install.

The package root mirrors the filesystem layout the package installs:
the staged prefix tree, an ld.so.conf.d snippet and documentation under
usr/share/doc/<name>.
"""

from __future__ import annotations

import gzip
import logging
import shutil
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from ffbuild.errors import MissingPrerequisiteError
from ffbuild.packaging.templates import render_template

logger = logging.getLogger(__name__)


@dataclass
class DocContext:
    """Values rendered into package documentation."""

    version: str
    full_version: str
    maintainer: str
    homepage: str
    bundled_lib_dir: str
    enabled: list[str] = field(default_factory=list)
    omitted: list[str] = field(default_factory=list)


class Stager:
    """Copies the staged install into a package root.

    Args:
        staging_root: DESTDIR used by `make install` (build/staging).
        package_root: Directory to (re)create as the package root.
        name: Package name.
        prefix: Install prefix inside the staging tree.
    """

    def __init__(
        self,
        staging_root: Path,
        package_root: Path,
        name: str,
        prefix: str = "/usr/local",
    ) -> None:
        self.staging_root = staging_root
        self.package_root = package_root
        self.name = name
        self.prefix = prefix.rstrip("/")

    @property
    def prefix_rel(self) -> Path:
        return Path(self.prefix.lstrip("/"))

    @property
    def doc_dir(self) -> Path:
        return self.package_root / "usr" / "share" / "doc" / self.name

    def stage(self, bundled_lib_dir: str, docs: DocContext) -> Path:
        """Build the package root from scratch.

        Raises:
            MissingPrerequisiteError: If the staged prefix does not exist.
        """
        source = self.staging_root / self.prefix_rel
        if not source.is_dir():
            raise MissingPrerequisiteError(
                f"Staged install not found at {source}; run build first",
                stage="build",
                artifact=source,
            )

        if self.package_root.exists():
            shutil.rmtree(self.package_root)
        target = self.package_root / self.prefix_rel
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(source, target, symlinks=True)
        logger.info("Staged %s into %s", source, self.package_root)

        self.write_ld_config(bundled_lib_dir)
        self.write_docs(docs)
        return self.package_root

    def write_ld_config(self, bundled_lib_dir: str) -> Path:
        """Write etc/ld.so.conf.d/<name>.conf listing both library dirs."""
        conf_dir = self.package_root / "etc" / "ld.so.conf.d"
        conf_dir.mkdir(parents=True, exist_ok=True)
        path = conf_dir / f"{self.name}.conf"
        path.write_text(f"{self.prefix}/lib\n{self.prefix}/{bundled_lib_dir}\n")
        return path

    def write_docs(self, docs: DocContext) -> list[Path]:
        """Write README.Debian, copyright and changelog.Debian.gz."""
        self.doc_dir.mkdir(parents=True, exist_ok=True)
        context = {
            "name": self.name,
            "prefix": self.prefix,
            "version": docs.version,
            "full_version": docs.full_version,
            "maintainer": docs.maintainer,
            "homepage": docs.homepage,
            "bundled_lib_dir": docs.bundled_lib_dir,
            "enabled": docs.enabled,
            "omitted": docs.omitted,
            "date": datetime.now(timezone.utc).strftime("%a, %d %b %Y %H:%M:%S +0000"),
        }

        readme = self.doc_dir / "README.Debian"
        readme.write_text(render_template("README.Debian.j2", **context))
        copyright_file = self.doc_dir / "copyright"
        copyright_file.write_text(render_template("copyright.j2", **context))

        changelog = self.doc_dir / "changelog.Debian.gz"
        data = render_template("changelog.j2", **context).encode("utf-8")
        with changelog.open("wb") as raw:
            with gzip.GzipFile(fileobj=raw, mode="wb", compresslevel=9, mtime=0) as gz:
                gz.write(data)
        return [readme, copyright_file, changelog]
