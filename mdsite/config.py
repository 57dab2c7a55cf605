from __future__ import annotations

import json
import sys
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml
from pygments.formatters import HtmlFormatter

try:
    import tomllib as toml
except ImportError:
    import tomli as toml

from .utils import parse_bool

CONFIG_FILES = ("site.toml", "site.yaml", "site.yml", "site.json")
DEFAULT_DESC = "My random thoughts on computers"
PATH_KEYS = {
    "content": "content_dir",
    "static": "static_dir",
    "output": "output_dir",
    "css": "css_file",
    "cname": "cname_file",
}


@dataclass(frozen=True)
class SiteConfig:
    content_dir: Path = Path("content")
    static_dir: Path = Path("static")
    output_dir: Path = Path("dist")
    css_file: Path = Path("main.css")
    cname_file: Path = Path("static") / "CNAME"
    minify: bool = True
    site_name: str = "Parsa's Blog"
    site_author: str = "Parsa G."
    site_description: str = DEFAULT_DESC
    github_url: str = "https://github.com/qti3e"
    default_host: str = "localhost"
    pygments_style: str = ""


def find_config(root: Path) -> Optional[Path]:
    for name in CONFIG_FILES:
        path = root / name
        if path.is_file():
            return path
    return None


def load_config(path: Path) -> dict:
    if not path.exists():
        return {}
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix == ".toml":
        try:
            data = toml.loads(text)
        except toml.TOMLDecodeError as exc:
            print(f"Invalid TOML in config file {path}: {exc}", file=sys.stderr)
            sys.exit(1)
        return data
    if suffix in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            print(f"Invalid YAML in config file {path}: {exc}", file=sys.stderr)
            sys.exit(1)
        if data is None:
            return {}
        if not isinstance(data, dict):
            print(f"YAML config must be a mapping: {path}", file=sys.stderr)
            sys.exit(1)
        return data
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        print(f"Invalid JSON in config file {path}: {exc}", file=sys.stderr)
        sys.exit(1)
    if not isinstance(data, dict):
        print(f"JSON config must be an object: {path}", file=sys.stderr)
        sys.exit(1)
    return data


def site_config(data: dict, base: Optional[Path] = None) -> SiteConfig:
    """Build a SiteConfig from raw config values; relative paths resolve against ``base``."""
    values: dict = {}
    for key, field_name in PATH_KEYS.items():
        if data.get(key) is None:
            continue
        path = Path(str(data[key]))
        if base is not None and not path.is_absolute():
            path = base / path
        values[field_name] = path
    if data.get("minify") is not None:
        values["minify"] = parse_bool(data["minify"])
    known = {field.name for field in fields(SiteConfig)} - set(PATH_KEYS.values()) - {"minify"}
    for key, value in data.items():
        if key in known and key not in values and value is not None:
            values[key] = str(value)
    return SiteConfig(**values)


def read_cname(path: Path) -> Optional[str]:
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    return content.strip() or None


def resolve_host(explicit: Optional[str], config: SiteConfig) -> str:
    if explicit:
        return explicit
    return read_cname(config.cname_file) or config.default_host


def load_stylesheet(config: SiteConfig) -> str:
    css = config.css_file.read_text(encoding="utf-8")
    if config.pygments_style:
        formatter = HtmlFormatter(style=config.pygments_style)
        css = f"{css}\n{formatter.get_style_defs('.codehilite')}\n"
    return css
