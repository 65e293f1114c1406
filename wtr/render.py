"""Rendering looked-up items, method lists and trait impls as text."""

from __future__ import annotations

import os
import sys
from typing import Any, Sequence

from wtr.fetch import Crate
from wtr.lookup import find_methods, find_trait_impls
from wtr.signatures import (
    _join_bounds,
    _variant,
    render_function_sig,
    render_generics_params,
    render_type,
    render_visibility,
    render_where_clause,
)

Item = dict[str, Any]

ENUM_PREVIEW_LEN = 5
_DIM = "\x1b[90m"
_RESET = "\x1b[0m"


def _kind(item: Item) -> tuple[str | None, Any]:
    inner = item.get("inner")
    if isinstance(inner, str):
        return inner, None
    if isinstance(inner, dict) and len(inner) == 1:
        return next(iter(inner.items()))
    return None, None


def _name(item: Item) -> str:
    name = item.get("name")
    return name if name is not None else "_"


def _first_doc_line(docs: str | None) -> str | None:
    if docs is None:
        return None
    return next((line.strip() for line in docs.split("\n") if line.strip()), None)


def _children(krate: Crate, ids: Sequence[int]):
    for item_id in ids:
        item = krate.index.get(item_id)
        if item is not None:
            yield item


def _render_struct(item: Item, data: dict[str, Any]) -> str:
    generics = data.get("generics", {})
    text = f"{render_visibility(item.get('visibility', 'default'))}struct {_name(item)}"
    text += render_generics_params(generics)
    kind, _ = _variant(data.get("kind", "unit"))
    if kind == "tuple":
        text += "(...)"
    elif kind == "plain":
        text += " { /* fields */ }"
    return text + render_where_clause(generics) + "\n"


def _render_enum(item: Item, data: dict[str, Any], krate: Crate) -> str:
    generics = data.get("generics", {})
    text = f"{render_visibility(item.get('visibility', 'default'))}enum {_name(item)}"
    text += render_generics_params(generics)
    names = [
        variant["name"]
        for variant in _children(krate, data.get("variants", []))
        if variant.get("name") is not None
    ]
    if names:
        text += " { " + ", ".join(names[:ENUM_PREVIEW_LEN])
        remaining = len(names) - ENUM_PREVIEW_LEN
        if remaining > 0:
            text += f", /* ... {remaining} more */"
        text += " }"
    return text + render_where_clause(generics) + "\n"


def _render_trait(item: Item, data: dict[str, Any], krate: Crate) -> str:
    generics = data.get("generics", {})
    text = render_visibility(item.get("visibility", "default"))
    if data.get("is_unsafe"):
        text += "unsafe "
    text += f"trait {_name(item)}{render_generics_params(generics)}"
    bounds = _join_bounds(data.get("bounds", []))
    if bounds:
        text += ": " + " + ".join(bounds)
    text += render_where_clause(generics) + " {\n"
    for assoc in _children(krate, data.get("items", [])):
        kind, func = _kind(assoc)
        if kind == "function":
            text += f"    {render_function_sig(assoc, func)};\n"
    return text + "}\n"


def _render_declaration(item: Item, krate: Crate) -> str:
    kind, data = _kind(item)
    vis = render_visibility(item.get("visibility", "default"))
    name = _name(item)
    match kind:
        case "function":
            return render_function_sig(item, data) + "\n"
        case "struct":
            return _render_struct(item, data)
        case "enum":
            return _render_enum(item, data, krate)
        case "trait":
            return _render_trait(item, data, krate)
        case "type_alias":
            generics = render_generics_params(data.get("generics", {}))
            return f"{vis}type {name}{generics} = {render_type(data['type'])};\n"
        case "constant":
            text = f"{vis}const {name}: {render_type(data['type'])}"
            value = (data.get("const") or {}).get("value")
            if value is not None:
                text += f" = {value}"
            return text + ";\n"
        case "module":
            return f"{vis}mod {name}\n"
    return f"{item['name']}\n" if item.get("name") is not None else ""


def render_item_summary(item: Item, krate: Crate) -> str:
    """Declaration of an item followed by the first line of its docs."""
    out = _render_declaration(item, krate)
    line = _first_doc_line(item.get("docs"))
    if line is not None:
        out += f"\n{line}\n"
    return out


def render_item_full(item: Item, krate: Crate) -> str:
    """Declaration with complete docs, plus fields or variants where present."""
    out = render_item_summary(item, krate)
    docs = item.get("docs")
    if docs is not None:
        line = _first_doc_line(docs)
        if line is not None and out.endswith(f"{line}\n"):
            out = out[: len(out) - len(line) - 1]
        out += docs.strip() + "\n"

    kind, data = _kind(item)
    if kind == "struct":
        struct_kind, payload = _variant(data.get("kind", "unit"))
        fields = payload.get("fields", []) if struct_kind == "plain" else []
        if fields:
            out += "\nFields:\n"
            for field in _children(krate, fields):
                field_kind, field_type = _kind(field)
                if field_kind != "struct_field":
                    continue
                out += f"  {_name(field)}: {render_type(field_type)}\n"
                line = _first_doc_line(field.get("docs"))
                if line is not None:
                    out += f"    {line}\n"
    elif kind == "enum":
        out += "\nVariants:\n"
        for variant in _children(krate, data.get("variants", [])):
            out += f"  {_name(variant)}\n"
            line = _first_doc_line(variant.get("docs"))
            if line is not None:
                out += f"    {line}\n"
    return out


def render_methods(item: Item, krate: Crate) -> str:
    """List the inherent methods of a type with their first doc lines."""
    methods = find_methods(krate, item)
    if not methods:
        return "No inherent methods found.\n"
    out = f"Methods for {_name(item)}:\n\n"
    for method in methods:
        kind, func = _kind(method)
        if kind != "function":
            continue
        out += render_function_sig(method, func) + "\n"
        line = _first_doc_line(method.get("docs"))
        if line is not None:
            out += f"  {line}\n"
        out += "\n"
    return out


def render_trait_impls(item: Item, krate: Crate) -> str:
    """List the trait implementations of a type and the methods they provide."""
    impls = find_trait_impls(krate, item)
    if not impls:
        return "No trait implementations found.\n"
    out = f"Trait implementations for {_name(item)}:\n\n"
    for impl_item, trait_name in impls:
        kind, impl = _kind(impl_item)
        if kind != "impl":
            continue
        out += f"impl {trait_name}"
        generics = impl.get("generics", {})
        if generics.get("params"):
            out += render_generics_params(generics)
        out += f" for {render_type(impl['for'])}\n"
        for assoc in _children(krate, impl.get("items", [])):
            assoc_kind, func = _kind(assoc)
            if assoc_kind == "function":
                out += f"  {render_function_sig(assoc, func)}\n"
        out += "\n"
    return out


def render_suggestions(
    crate_name: str,
    path: Sequence[str],
    item: Item,
    used_full: bool,
    used_methods: bool,
    used_traits: bool,
) -> str:
    """Suggest follow-up commands for the flags not yet used."""
    kind, _ = _kind(item)
    has_impls = kind in ("struct", "enum", "union")
    query = "::".join([crate_name, *path])

    suggestions = []
    if not used_methods and has_impls:
        suggestions.append(f"  wtr {query} --methods    List methods")
    if not used_full:
        suggestions.append(f"  wtr {query} --full       Full documentation")
    if not used_traits and has_impls:
        suggestions.append(f"  wtr {query} --traits     Trait implementations")

    if not suggestions:
        return ""
    return "\nSee more:\n" + "".join(f"{line}\n" for line in suggestions)


def _use_color(no_color: bool) -> bool:
    return not no_color and sys.stdout.isatty() and "NO_COLOR" not in os.environ


def print_output(body: str, suggestions: str, no_color: bool) -> None:
    """Print the body, then the suggestions dimmed when colour is enabled."""
    sys.stdout.write(body)
    if not suggestions:
        return
    if _use_color(no_color):
        sys.stdout.write(f"{_DIM}{suggestions}{_RESET}")
    else:
        sys.stdout.write(suggestions)