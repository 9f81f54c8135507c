#!/usr/bin/env python3
"""Bundle per-tag OpenAPI path fragments into a single collabsvc spec.

The script reads every YAML fragment in ``./tags`` (each a mapping of path
patterns to path items), merges them into ``paths``, takes ``components`` from
``./components/components.yaml`` and writes the result, prefixed with a fixed
header (openapi version, info, externalDocs, servers, tags), to the output
file.

Fragments are merged in directory-listing order. When two fragments define
the same path, the one processed last wins.

Usage:
    python bin/bundle_openapi.py
    python bin/bundle_openapi.py --output collabsvc_bundled.yaml
"""

from __future__ import annotations

import argparse
import os
import sys
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, Union

import yaml


Json = Union[dict[str, Any], list[Any], str, int, float, bool, None]

DEFAULT_OUTPUT = "collabsvc_bundled.yaml"
TAGS_DIRNAME = "tags"
COMPONENTS_PATH = Path("components") / "components.yaml"
FRAGMENT_SUFFIXES: tuple[str, ...] = (".yaml", ".yml")

DEFAULT_HEADER: dict[str, Any] = {
    "openapi": "3.0.2",
    "info": {
        "title": "Creo Collaboration service",
        "description": "API specification for Creo Collaboration service",
        "version": "1.0.71",
    },
    "externalDocs": {
        "description": "Error Codes Documentation",
        "url": "https://gitlab.rd-services.aws.ptc.com/creo/cgm/collabsvc/-/blob/master/errors/error_codes.go",
    },
    "servers": [
        {"url": "https://creo.staging.atlas.ptc.com/collabsvc/api/cs"},
    ],
    "tags": [
        {"name": "Sessions", "description": "Session endpoints"},
        {"name": "Branches", "description": "Branches endpoints"},
        {"name": "Checkpoints", "description": "Checkpoint endpoints"},
        {"name": "Chapters", "description": "Chapters endpoints"},
        {"name": "Comments", "description": "Comments endpoints"},
        {"name": "ConnectionSpeed", "description": "ConnectionSpeed endpoints"},
    ],
}


class BundleError(RuntimeError):
    pass


class _UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that rejects a mapping defining the same key twice."""

    def construct_mapping(self, node: yaml.Node, deep: bool = False) -> dict[Any, Any]:
        if isinstance(node, yaml.MappingNode):
            seen: set[Any] = set()
            for key_node, _value_node in node.value:
                # Merge keys ("<<") may be overridden by explicit keys.
                if not isinstance(key_node, yaml.ScalarNode) or key_node.tag == "tag:yaml.org,2002:merge":
                    continue
                key = self.construct_object(key_node, deep=deep)
                if key in seen:
                    raise yaml.constructor.ConstructorError(
                        "while constructing a mapping",
                        node.start_mark,
                        f"mapping key {key!r} already defined",
                        key_node.start_mark,
                    )
                seen.add(key)
        return super().construct_mapping(node, deep=deep)


class _NoAliasDumper(yaml.SafeDumper):
    """SafeDumper that writes shared values out in full instead of as &anchors."""

    def ignore_aliases(self, data: Any) -> bool:
        return True


def _eprint(*args: object) -> None:
    print(*args, file=sys.stderr)


def _warn(msg: object) -> None:
    _eprint(f"warning: {msg}")


@dataclass
class BundledDocument:
    header: dict[str, Any]
    paths: dict[str, Json] = field(default_factory=dict)
    components: dict[str, Json] = field(default_factory=dict)

    @classmethod
    def from_header(cls, header: Optional[Mapping[str, Any]] = None) -> "BundledDocument":
        # Deep copy so a run never mutates DEFAULT_HEADER or a caller's header.
        return cls(header=deepcopy(dict(DEFAULT_HEADER if header is None else header)))

    def merge_paths(self, fragment: Mapping[str, Json]) -> None:
        for key, value in fragment.items():
            self.paths[key] = value

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = dict(self.header)
        out["paths"] = self.paths
        out["components"] = self.components
        return out


def load_yaml_file(path: Path) -> Json:
    """
    Read and parse a single YAML file.

    Read errors and parse errors are both raised as BundleError, with the
    offending path in the message.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise BundleError(f"error reading file {path}: {e}") from e
    try:
        return yaml.load(text, Loader=_UniqueKeyLoader)
    except yaml.YAMLError as e:
        raise BundleError(f"error parsing YAML from {path}: {e}") from e


def load_fragment(path: Path) -> dict[str, Json]:
    raw = load_yaml_file(path)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise BundleError(
            f"error parsing YAML from {path}: expected a mapping of paths at top-level (got {type(raw).__name__})"
        )
    return raw


def load_components(path: Path) -> dict[str, Json]:
    """Return the `components` mapping of a components file ({} when absent)."""
    raw = load_yaml_file(path)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise BundleError(
            f"error parsing YAML from {path}: expected a mapping at top-level (got {type(raw).__name__})"
        )
    components = raw.get("components")
    if components is None:
        return {}
    if not isinstance(components, dict):
        raise BundleError(
            f"error parsing YAML from {path}: 'components' must be a mapping (got {type(components).__name__})"
        )
    return components


def iter_fragment_files(tags_folder: Path) -> list[Path]:
    """
    List fragment files in tags_folder, in directory-listing order.
    Subdirectories and files without a YAML suffix are ignored.
    """
    try:
        names = os.listdir(tags_folder)
    except OSError as e:
        raise BundleError(f"error reading tags folder {tags_folder}: {e}") from e

    files: list[Path] = []
    for name in names:
        candidate = tags_folder / name
        if candidate.is_dir():
            continue
        if not name.endswith(FRAGMENT_SUFFIXES):
            continue
        files.append(candidate)
    return files


def render_document(doc: BundledDocument) -> str:
    try:
        return yaml.dump(
            doc.to_dict(),
            Dumper=_NoAliasDumper,
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
        )
    except (yaml.YAMLError, RecursionError) as e:
        # RecursionError: a self-referencing alias cannot be written out in full.
        raise BundleError(f"error marshaling data to YAML: {e}") from e


def save_yaml_file(path: Path, doc: BundledDocument) -> None:
    # Render first so a serialization failure leaves any existing output intact.
    content = render_document(doc)
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise BundleError(f"error writing file {path}: {e}") from e


def bundle(
    tags_folder: Union[str, Path],
    components_file: Union[str, Path],
    output_file: Union[str, Path],
    *,
    header: Optional[Mapping[str, Any]] = None,
) -> Path:
    tags_folder = Path(tags_folder)
    components_file = Path(components_file)
    output_file = Path(output_file)

    doc = BundledDocument.from_header(header)

    for fragment_path in iter_fragment_files(tags_folder):
        try:
            fragment = load_fragment(fragment_path)
        except BundleError as e:
            _warn(e)
            continue
        doc.merge_paths(fragment)

    try:
        components = load_components(components_file)
    except BundleError as e:
        _warn(e)
        _eprint("No valid components will be included.")
    else:
        if components:
            doc.components = components
        else:
            _warn(f"'components' section is empty or not found in {components_file}")

    try:
        save_yaml_file(output_file, doc)
    except BundleError as e:
        raise BundleError(f"error saving bundled file: {e}") from e

    print(f"Successfully bundled OpenAPI spec to {output_file}")
    return output_file


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description=(
            f"Bundle ./{TAGS_DIRNAME}/*.yaml path fragments and ./{COMPONENTS_PATH.as_posix()} "
            "into a single OpenAPI document."
        )
    )
    p.add_argument(
        "-o",
        "--output",
        default=DEFAULT_OUTPUT,
        metavar="PATH",
        help=f"Path to the output bundled OpenAPI file, relative to the working directory (default: {DEFAULT_OUTPUT}).",
    )
    return p.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    base_dir = Path.cwd()

    try:
        bundle(
            base_dir / TAGS_DIRNAME,
            base_dir / COMPONENTS_PATH,
            base_dir / args.output,
        )
    except BundleError as e:
        _eprint(f"Bundling failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
