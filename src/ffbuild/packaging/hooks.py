"""Maintainer scripts for the Debian package."""

from __future__ import annotations

from pathlib import Path

from ffbuild.packaging.templates import render_template

HOOK_NAMES = ("postinst", "prerm", "postrm")
HOOK_MODE = 0o755


def render_hook(
    hook: str, name: str, prefix: str, symlink_binaries: list[str]
) -> str:
    """Render one maintainer script."""
    if hook not in HOOK_NAMES:
        raise ValueError(f"Unknown hook {hook!r}")
    return render_template(
        f"{hook}.j2",
        name=name,
        prefix=prefix.rstrip("/"),
        symlink_binaries=symlink_binaries,
    )


def write_hooks(
    control_dir: Path, name: str, prefix: str, symlink_binaries: list[str]
) -> list[Path]:
    """Write postinst, prerm and postrm into the control directory.

    Returns:
        Paths of the written scripts, each with mode 0755.
    """
    control_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for hook in HOOK_NAMES:
        path = control_dir / hook
        path.write_text(render_hook(hook, name, prefix, symlink_binaries))
        path.chmod(HOOK_MODE)
        written.append(path)
    return written
