"""Resolving item paths within a parsed crate."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from wtr.fetch import Crate

Item = dict[str, Any]


class ItemNotFoundError(LookupError):
    """Raised when a path does not resolve to an item in the crate."""


@dataclass
class LookupResult:
    """A found item, with the ``use`` source path if reached via a re-export."""

    item: Item
    reexport_source: str | None = None


def _kind(item: Item) -> tuple[str | None, Any]:
    inner = item.get("inner")
    if isinstance(inner, dict) and inner:
        return next(iter(inner.items()))
    if isinstance(inner, str):
        return inner, None
    return None, None


def _module_items(item: Item) -> list[int] | None:
    kind, data = _kind(item)
    if kind != "module" or not isinstance(data, dict):
        return None
    return data.get("items", [])


def _impl_ids(item: Item) -> list[int] | None:
    kind, data = _kind(item)
    if kind in ("struct", "enum", "union") and isinstance(data, dict):
        return data.get("impls", [])
    return None


def _impl_data(item: Item) -> dict[str, Any] | None:
    kind, data = _kind(item)
    return data if kind == "impl" and isinstance(data, dict) else None


def lookup_item(krate: Crate, path: Sequence[str]) -> LookupResult:
    """Find an item by path components, such as ``["de", "Deserialize"]``.

    An empty path yields the crate root. When the full path is not an item,
    the last component is looked up as an associated item of the type named
    by the rest.
    """
    path = list(path)
    if not path:
        root = krate.index.get(krate.root)
        if root is None:
            raise ItemNotFoundError("root item not found in index")
        return LookupResult(root)

    item = _find_by_path(krate, path)
    if item is not None:
        return LookupResult(item)

    result = find_by_module_walk(krate, path)
    if result is not None:
        return result

    if len(path) >= 2:
        *type_path, method_name = path
        type_item = _find_by_path(krate, type_path)
        type_result = (
            LookupResult(type_item)
            if type_item is not None
            else find_by_module_walk(krate, type_path)
        )
        if type_result is not None:
            method = _find_assoc_item(krate, type_result.item, method_name)
            if method is not None:
                return LookupResult(method, type_result.reexport_source)

    raise ItemNotFoundError(f"item `{'::'.join(path)}` not found")


def _find_by_path(krate: Crate, query: list[str]) -> Item | None:
    """Match the query against the tail of each summary path (which starts
    with the crate name)."""
    for item_id, summary in krate.paths.items():
        full_path = summary.get("path", [])
        if len(full_path) > len(query) and full_path[len(full_path) - len(query):] == query:
            item = krate.index.get(item_id)
            if item is not None:
                return item
    return None


def find_by_module_walk(krate: Crate, query: Sequence[str]) -> LookupResult | None:
    """Walk the module tree from the root, following re-exports.

    Finds items that are not listed in ``krate.paths`` under their public path.
    """
    root = krate.index.get(krate.root)
    if root is None:
        return None
    children = _module_items(root)
    if children is None:
        return None
    return _walk_module_children(krate, children, list(query))


def _walk_module_children(
    krate: Crate, children: list[int], query: list[str]
) -> LookupResult | None:
    if not query:
        return None
    target_name, remaining = query[0], query[1:]

    for child_id in children:
        child = krate.index.get(child_id)
        if child is None:
            continue
        kind, data = _kind(child)

        if kind == "use":
            if data.get("name") != target_name:
                continue
            target_id = data.get("id")
            target = krate.index.get(target_id) if target_id is not None else None
            if not remaining:
                if target is None:
                    return None
                return LookupResult(target, data.get("source"))
            if target is not None:
                items = _module_items(target)
                if items is not None:
                    return _walk_module_children(krate, items, remaining)
        elif child.get("name") == target_name:
            if not remaining:
                return LookupResult(child)
            items = _module_items(child)
            if items is not None:
                return _walk_module_children(krate, items, remaining)

    return None


def _find_assoc_item(krate: Crate, type_item: Item, name: str) -> Item | None:
    impl_ids = _impl_ids(type_item)
    if impl_ids is None:
        return None
    for impl_id in impl_ids:
        impl_item = krate.index.get(impl_id)
        if impl_item is None:
            return None
        impl = _impl_data(impl_item)
        if impl is None:
            continue
        for item_id in impl.get("items", []):
            item = krate.index.get(item_id)
            if item is not None and item.get("name") == name:
                return item
    return None


def _impls(krate: Crate, type_item: Item):
    for impl_id in _impl_ids(type_item) or []:
        impl_item = krate.index.get(impl_id)
        if impl_item is None:
            continue
        impl = _impl_data(impl_item)
        if impl is not None:
            yield impl_item, impl


def find_methods(krate: Crate, type_item: Item) -> list[Item]:
    """Items of the inherent (non-trait) impl blocks of a type."""
    return [
        item
        for _, impl in _impls(krate, type_item)
        if impl.get("trait") is None
        for item in (krate.index.get(item_id) for item_id in impl.get("items", []))
        if item is not None
    ]


def find_trait_impls(krate: Crate, type_item: Item) -> list[tuple[Item, str]]:
    """(impl item, trait path) pairs for a type, without synthetic or blanket impls."""
    return [
        (impl_item, impl["trait"].get("path", ""))
        for impl_item, impl in _impls(krate, type_item)
        if impl.get("trait") is not None
        and not impl.get("is_synthetic")
        and impl.get("blanket_impl") is None
    ]