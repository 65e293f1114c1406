"""Inferring a dependency's version from the surrounding cargo workspace."""

from __future__ import annotations

import json
import subprocess
from typing import Any


def version_from_metadata(metadata: Any, crate_name: str) -> str | None:
    """Find the resolved version of a direct dependency in ``cargo metadata`` output.

    Hyphens and underscores in crate names are treated as equal.
    """
    resolve = metadata.get("resolve") if isinstance(metadata, dict) else None
    if not isinstance(resolve, dict):
        return None
    root_id = resolve.get("root")
    nodes = resolve.get("nodes")
    if not isinstance(root_id, str) or not isinstance(nodes, list):
        return None

    root_node = next(
        (node for node in nodes if isinstance(node, dict) and node.get("id") == root_id),
        None,
    )
    if root_node is None:
        return None
    deps = root_node.get("deps")
    if not isinstance(deps, list):
        return None

    wanted = crate_name.replace("-", "_")
    for dep in deps:
        name = dep.get("name") if isinstance(dep, dict) else None
        if not isinstance(name, str):
            return None
        if name.replace("-", "_") != wanted:
            continue
        # `pkg` looks like `registry+...#crate-name@1.2.3` or `crate-name@1.2.3`.
        pkg = dep.get("pkg")
        if not isinstance(pkg, str):
            return None
        version = pkg.rsplit("@", 1)[-1]
        if version:
            return version
    return None


def infer_dep_version(crate_name: str) -> str | None:
    """Version of ``crate_name`` as a direct dependency of the current project.

    Returns None when ``cargo metadata`` fails or the crate is not a direct
    dependency.
    """
    try:
        completed = subprocess.run(
            ["cargo", "metadata", "--format-version", "1"],
            capture_output=True,
            check=False,
        )
    except OSError:
        return None
    if completed.returncode != 0:
        return None
    try:
        metadata = json.loads(completed.stdout)
    except (ValueError, UnicodeDecodeError):
        return None
    return version_from_metadata(metadata, crate_name)