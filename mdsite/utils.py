from __future__ import annotations

import datetime as dt
import shutil
import sys
from pathlib import Path
from typing import Iterable


def parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return False


def join_url(base: str, path: str) -> str:
    base = base.rstrip("/")
    path = path.lstrip("/")
    if not path:
        return base
    return f"{base}/{path}"


def site_url(host: str, path: str = "") -> str:
    return join_url(f"https://{host}", path)


def to_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def rfc822_date(value: dt.datetime) -> str:
    return to_utc(value).strftime("%a, %d %b %Y %H:%M:%S GMT")


def write_nojekyll(output_dir: Path) -> None:
    output_dir.joinpath(".nojekyll").write_text("", encoding="utf-8")


def refuse(message: str) -> None:
    print(message, file=sys.stderr)
    sys.exit(1)


def overlaps(a: Path, b: Path) -> bool:
    return a == b or a in b.parents or b in a.parents


def clean_output_dir(
    output_dir: Path,
    project_root: Path,
    sources: Iterable[Path] = (),
    inputs: Iterable[Path] = (),
) -> None:
    """Remove a previous build.

    Exits instead when deleting it would take the project root or any of
    ``sources`` and ``inputs`` with it. An output root inside a source
    directory is refused too.
    """
    target = output_dir.resolve()
    root = project_root.resolve()
    if target == root or target in root.parents:
        refuse("Refusing to clean project root.")
    for source in sources:
        if overlaps(target, source.resolve()):
            refuse(f"Refusing to use {output_dir} as output: it overlaps {source}.")
    for path in inputs:
        resolved = path.resolve()
        if target == resolved or target in resolved.parents:
            refuse(f"Refusing to use {output_dir} as output: it contains {path}.")
    if output_dir.exists():
        shutil.rmtree(output_dir)
