"""Rendering rustdoc JSON types, generics and function signatures as source text."""

from __future__ import annotations

from typing import Any

JsonValue = Any


def _variant(value: JsonValue) -> tuple[str, JsonValue]:
    """Split an externally tagged enum value into its tag and payload."""
    if isinstance(value, str):
        return value, None
    if isinstance(value, dict) and len(value) == 1:
        return next(iter(value.items()))
    raise ValueError(f"malformed rustdoc enum value: {value!r}")


def _item_name(item: dict[str, Any]) -> str:
    name = item.get("name")
    return name if name is not None else "_"


def _path_name(path: dict[str, Any]) -> str:
    # Older format versions call the field `name`.
    return path.get("path", path.get("name", ""))


def _render_path(path: dict[str, Any]) -> str:
    text = _path_name(path)
    args = path.get("args")
    if args is not None:
        text += _render_generic_args(args)
    return text


def _signature(func: dict[str, Any]) -> dict[str, Any]:
    # Older format versions call the signature `decl`.
    sig = func.get("sig")
    return sig if sig is not None else func.get("decl", {})


def _join_bounds(bounds: list[JsonValue]) -> list[str]:
    return [text for text in map(_render_generic_bound, bounds) if text is not None]


def render_type(ty: JsonValue) -> str:
    """Render a rustdoc type as it would appear in source."""
    tag, data = _variant(ty)
    match tag:
        case "resolved_path":
            return _render_path(data)
        case "generic" | "primitive":
            return data
        case "borrowed_ref":
            text = "&"
            lifetime = data.get("lifetime")
            if lifetime is not None:
                text += f"{lifetime} "
            if data.get("is_mutable"):
                text += "mut "
            return text + render_type(data["type"])
        case "tuple":
            return f"({', '.join(render_type(t) for t in data)})"
        case "slice":
            return f"[{render_type(data)}]"
        case "array":
            return f"[{render_type(data['type'])}; {data['len']}]"
        case "raw_pointer":
            qualifier = "mut" if data.get("is_mutable") else "const"
            return f"*{qualifier} {render_type(data['type'])}"
        case "function_pointer":
            return _render_fn_pointer(data)
        case "impl_trait":
            return "impl " + " + ".join(_join_bounds(data))
        case "dyn_trait":
            traits = [_render_path(poly["trait"]) for poly in data.get("traits", [])]
            text = "dyn " + " + ".join(traits)
            lifetime = data.get("lifetime")
            if lifetime is not None:
                text += f" + {lifetime}"
            return text
        case "qualified_path":
            self_type = render_type(data["self_type"])
            name = data["name"]
            trait = data.get("trait")
            if trait is not None and _path_name(trait):
                return f"<{self_type} as {_path_name(trait)}>::{name}"
            return f"{self_type}::{name}"
        case "infer":
            return "_"
        case "pat":
            return render_type(data["type"])
    raise ValueError(f"unknown type kind: {tag!r}")


def _render_generic_args(args: JsonValue) -> str:
    tag, data = _variant(args)
    match tag:
        case "angle_bracketed":
            parts = [_render_generic_arg(arg) for arg in data.get("args", [])]
            constraints = data.get("constraints", data.get("bindings", []))
            for constraint in constraints:
                kind, payload = _variant(constraint["binding"])
                if kind == "equality":
                    parts.append(f"{constraint['name']} = {_render_term(payload)}")
                elif kind == "constraint":
                    parts.append(f"{constraint['name']}: {' + '.join(_join_bounds(payload))}")
                else:
                    raise ValueError(f"unknown constraint kind: {kind!r}")
            return f"<{', '.join(parts)}>" if parts else ""
        case "parenthesized":
            text = f"({', '.join(render_type(t) for t in data.get('inputs', []))})"
            output = data.get("output")
            if output is not None:
                text += f" -> {render_type(output)}"
            return text
        case "return_type_notation":
            return "(..)"
    raise ValueError(f"unknown generic args kind: {tag!r}")


def _const_value(constant: dict[str, Any]) -> str:
    value = constant.get("value")
    return value if value is not None else "_"


def _render_generic_arg(arg: JsonValue) -> str:
    tag, data = _variant(arg)
    match tag:
        case "lifetime":
            return data
        case "type":
            return render_type(data)
        case "const":
            return _const_value(data)
        case "infer":
            return "_"
    raise ValueError(f"unknown generic arg kind: {tag!r}")


def _render_term(term: JsonValue) -> str:
    tag, data = _variant(term)
    if tag == "type":
        return render_type(data)
    if tag == "constant":
        return _const_value(data)
    raise ValueError(f"unknown term kind: {tag!r}")


def _render_generic_bound(bound: JsonValue) -> str | None:
    tag, data = _variant(bound)
    match tag:
        case "trait_bound":
            modifier = data.get("modifier", "none")
            prefix = {"maybe": "?", "maybe_const": "~const "}.get(modifier, "")
            return prefix + _render_path(data["trait"])
        case "outlives":
            return data
        case "use":
            return None
    raise ValueError(f"unknown bound kind: {tag!r}")


def _render_fn_pointer(pointer: dict[str, Any]) -> str:
    sig = _signature(pointer)
    text = f"fn({', '.join(render_type(ty) for _, ty in sig.get('inputs', []))})"
    output = sig.get("output")
    if output is not None:
        text += f" -> {render_type(output)}"
    return text


def _render_param(param: dict[str, Any]) -> str | None:
    name = param["name"]
    tag, data = _variant(param["kind"])
    match tag:
        case "lifetime":
            outlives = data.get("outlives", [])
            return f"{name}: {' + '.join(outlives)}" if outlives else name
        case "type":
            if data.get("is_synthetic"):
                return None
            text = name
            bounds = _join_bounds(data.get("bounds", []))
            if bounds:
                text += ": " + " + ".join(bounds)
            default = data.get("default")
            if default is not None:
                text += f" = {render_type(default)}"
            return text
        case "const":
            text = f"const {name}: {render_type(data['type'])}"
            default = data.get("default")
            if default is not None:
                text += f" = {default}"
            return text
    raise ValueError(f"unknown generic parameter kind: {tag!r}")


def render_generics_params(generics: dict[str, Any]) -> str:
    """Render the ``<...>`` parameter list, or an empty string if there is none."""
    params = [text for text in map(_render_param, generics.get("params", [])) if text is not None]
    return f"<{', '.join(params)}>" if params else ""


def _render_predicate(predicate: JsonValue) -> str | None:
    tag, data = _variant(predicate)
    match tag:
        case "bound_predicate":
            bounds = _join_bounds(data.get("bounds", []))
            if not bounds:
                return None
            return f"{render_type(data['type'])}: {' + '.join(bounds)}"
        case "lifetime_predicate":
            return f"{data['lifetime']}: {' + '.join(data.get('outlives', []))}"
        case "eq_predicate":
            return f"{render_type(data['lhs'])} = {_render_term(data['rhs'])}"
    raise ValueError(f"unknown where predicate kind: {tag!r}")


def render_where_clause(generics: dict[str, Any]) -> str:
    """Render a multi-line ``where`` clause, or an empty string if there is none."""
    predicates = [
        text
        for text in map(_render_predicate, generics.get("where_predicates", []))
        if text is not None
    ]
    if not predicates:
        return ""
    return "\nwhere\n    " + ",\n    ".join(predicates)


def render_visibility(vis: JsonValue) -> str:
    """Render a visibility as a prefix, including its trailing space."""
    tag, data = _variant(vis)
    match tag:
        case "public":
            return "pub "
        case "crate":
            return "pub(crate) "
        case "restricted":
            return f"pub(in {data['path']}) "
        case "default":
            return ""
    raise ValueError(f"unknown visibility: {tag!r}")


def _render_input(name: str, ty: JsonValue) -> str:
    rendered = render_type(ty)
    if name != "self":
        return f"{name}: {rendered}"
    shorthand = {"Self": "self", "&Self": "&self", "&mut Self": "&mut self"}
    return shorthand.get(rendered, f"self: {rendered}")


def render_function_sig(item: dict[str, Any], func: dict[str, Any]) -> str:
    """Render a function item's full signature, without a trailing semicolon."""
    text = render_visibility(item.get("visibility", "default"))

    header = func.get("header", {})
    for flag, legacy, keyword in (
        ("is_const", "const_", "const "),
        ("is_async", "async_", "async "),
        ("is_unsafe", "unsafe_", "unsafe "),
    ):
        if header.get(flag, header.get(legacy, False)):
            text += keyword

    generics = func.get("generics", {})
    sig = _signature(func)
    args = ", ".join(_render_input(name, ty) for name, ty in sig.get("inputs", []))
    text += f"fn {_item_name(item)}{render_generics_params(generics)}({args})"

    output = sig.get("output")
    if output is not None:
        text += f" -> {render_type(output)}"
    return text + render_where_clause(generics)