"""TemplateRenderer: Jinja2 rendering for ticket templates.

Templates use plain Jinja2 syntax::

    {{ component.name }}                    interpolation, dotted access
    {{ labels | join(", ") | upper }}       filters, applied left to right
    {{ owner | default("Design team") }}    explicit default
    {% if a and not b %} .. {% elif x == "y" %} .. {% else %} .. {% endif %}
    {% for item in items %} {{ loop.index }} .. {% else %} .. {% endfor %}
    {# comment #}

The environment trims block lines, so a tag alone on its line leaves no
blank line behind. ``{% endif +%}`` keeps the newline after an inline tag.

Missing values never render as blanks. A ``DefaultingUndefined`` bound to
the render records the namespace path it stands for in
``unresolved_fields`` and prints the DefaultPolicy value instead. Blank
strings count as missing. Rendering is a pure function of
``(body, namespace)``.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from functools import wraps
from typing import Any

from jinja2 import TemplateError as JinjaTemplateError
from jinja2 import TemplateSyntaxError as JinjaSyntaxError
from jinja2 import Undefined, nodes
from jinja2.sandbox import SandboxedEnvironment
from jinja2.utils import missing
from pydantic import BaseModel

from ticketforge.resilience.errors import RenderFailure, TemplateSyntaxError
from ticketforge.templates.defaults import DefaultPolicy, is_missing

MARKER = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z0-9_]+)*)\s*\}\}")


# ── Values and filters ───────────────────────────────────


def to_text(value: Any) -> str:
    """Deterministic string form used for every interpolation."""
    if isinstance(value, Undefined):
        return str(value)
    if value is None:
        return ""
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return f"{value:.2f}".rstrip("0").rstrip(".")
    if isinstance(value, Mapping):
        return ", ".join(f"{k}: {to_text(v)}" for k, v in value.items())
    if isinstance(value, (list, tuple, set, frozenset)):
        items = sorted(value, key=str) if isinstance(value, (set, frozenset)) else value
        return ", ".join(to_text(v) for v in items)
    return str(value)


def _number(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        raise ValueError(f"not a number: {value!r}")
    return float(value)


def _f_default(value: Any, fallback: Any = "", boolean: bool = False) -> Any:
    if isinstance(value, Undefined) or is_missing(value):
        return fallback
    return fallback if boolean and not value else value


def _f_join(value: Any, separator: Any = ", ") -> str:
    if isinstance(value, (list, tuple)):
        return str(separator).join(to_text(v) for v in value)
    return to_text(value)


def _f_length(value: Any) -> int:
    if isinstance(value, (str, list, tuple, dict, set, frozenset)):
        return len(value)
    return 0


def _f_truncate(value: Any, length: Any = 80) -> str:
    text = to_text(value)
    limit = int(length)
    if len(text) <= limit:
        return text
    return text[: max(0, limit - 3)].rstrip() + "..."


def _f_percent(value: Any) -> str:
    number = _number(value)
    if -1.0 <= number <= 1.0:
        number *= 100
    return f"{round(number)}%"


def _f_round(value: Any, digits: Any = 0) -> float | int:
    rounded = round(_number(value), int(digits))
    return int(rounded) if int(digits) == 0 else rounded


def _f_first(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _f_last(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return value[-1] if value else None
    return value


def _f_bullets(value: Any, marker: Any = "-") -> str:
    items = value if isinstance(value, (list, tuple)) else [value]
    return "\n".join(
        f"{marker} {to_text(v)}" for v in items if v and not is_missing(v)
    )


FILTERS: dict[str, Callable[..., Any]] = {
    "default": _f_default,
    "d": _f_default,
    "lower": lambda v: to_text(v).lower(),
    "lowercase": lambda v: to_text(v).lower(),
    "upper": lambda v: to_text(v).upper(),
    "uppercase": lambda v: to_text(v).upper(),
    "capitalize": lambda v: to_text(v).capitalize(),
    "title": lambda v: to_text(v).title(),
    "trim": lambda v: to_text(v).strip(),
    "join": _f_join,
    "length": _f_length,
    "replace": lambda v, old, new: to_text(v).replace(str(old), str(new)),
    "truncate": _f_truncate,
    "percent": _f_percent,
    "multiply": lambda v, n: _number(v) * _number(n),
    "round": _f_round,
    "first": _f_first,
    "last": _f_last,
    "bullets": _f_bullets,
}

_SEES_UNDEFINED = frozenset({"default", "d"})


def _guarded_filter(name: str, func: Callable[..., Any]) -> Callable[..., Any]:
    """Pass missing values through untouched and name the filter on failure.

    A missing input reaches the end of the chain still undefined, so it
    is defaulted and reported once. Only ``default`` sees it.
    """

    @wraps(func)
    def apply(value: Any, *args: Any) -> Any:
        if isinstance(value, Undefined) and name not in _SEES_UNDEFINED:
            return value
        args = tuple(None if isinstance(a, Undefined) else a for a in args)
        try:
            return func(value, *args)
        except (TypeError, ValueError) as exc:
            raise RenderFailure(f"filter {name!r} failed: {exc}") from exc

    return apply


# ── Environment ──────────────────────────────────────────


@dataclass(frozen=True)
class RenderResult:
    content: str
    unresolved_fields: frozenset[str] = frozenset()


@dataclass
class _RenderState:
    """Per-render bookkeeping shared by the environment and its Undefined."""

    namespace: Mapping[str, Any]
    policy: DefaultPolicy
    paths: dict[int, str] = field(default_factory=dict)
    unresolved: set[str] = field(default_factory=set)
    root: dict[str, Any] = field(init=False)

    def __post_init__(self) -> None:
        self.root = self._prepare(self.namespace, "")

    def _prepare(self, value: Any, path: str) -> Any:
        # Copies drop blank values and remember where each container lives,
        # so a lookup that misses can name its full namespace path.
        if isinstance(value, Mapping):
            prepared = {
                key: self._prepare(item, f"{path}.{key}" if path else str(key))
                for key, item in value.items()
                if not is_missing(item)
            }
            self.paths[id(prepared)] = path
            return prepared
        if isinstance(value, (list, tuple)):
            items = [self._prepare(item, f"{path}[]") for item in value]
            self.paths[id(items)] = path
            return items
        return value

    def path_of(self, obj: Any) -> str:
        return self.paths.get(id(obj), "")

    def resolve(self, path: str) -> str:
        self.unresolved.add(path)
        return to_text(self.policy.value_for(path, self.namespace))

    def sequence(self, path: str) -> list[Any]:
        fallback = self.policy.sequence_for(path, self.namespace)
        if fallback is None:
            return []
        self.unresolved.add(path)
        return list(fallback)


class DefaultingUndefined(Undefined):
    """Undefined that stands for a namespace path and prints its default.

    Attribute access chains, so ``component.owner.name`` stays one path.
    Comparisons are false and iteration yields the policy's default
    sequence, if it has one.
    """

    __slots__ = ()
    _state: _RenderState | None = None

    @property
    def path(self) -> str:
        name = self._undefined_name
        if name is None:
            return ""
        obj = self._undefined_obj
        if isinstance(obj, DefaultingUndefined):
            base = obj.path
        elif obj is missing or self._state is None:
            base = ""
        else:
            base = self._state.path_of(obj)
        return f"{base}.{name}" if base else str(name)

    def _defaults(self) -> list[Any]:
        path = self.path
        if self._state is None or not path:
            return []
        return self._state.sequence(path)

    def __str__(self) -> str:
        path = self.path
        if self._state is None or not path:
            return ""
        return self._state.resolve(path)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._defaults())

    def __len__(self) -> int:
        return len(self._defaults())

    def __lt__(self, other: Any) -> bool:
        return False

    __le__ = __gt__ = __ge__ = __lt__


class _DocumentEnvironment(SandboxedEnvironment):
    """Sandboxed environment where mapping keys always win over methods.

    ``interactions.items`` is the namespace key, never ``dict.items``.
    """

    def getattr(self, obj: Any, attribute: str) -> Any:
        if isinstance(obj, Undefined):
            return self.undefined(obj=obj, name=attribute)
        if isinstance(obj, Mapping):
            if attribute in obj:
                return obj[attribute]
            return self.undefined(obj=obj, name=attribute)
        return super().getattr(obj, attribute)

    def getitem(self, obj: Any, argument: Any) -> Any:
        if isinstance(obj, Undefined):
            return self.undefined(obj=obj, name=argument)
        if isinstance(obj, Mapping) and isinstance(argument, str):
            return self.getattr(obj, argument)
        return super().getitem(obj, argument)


def _build_environment() -> _DocumentEnvironment:
    env = _DocumentEnvironment(
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        autoescape=False,
        finalize=to_text,
        undefined=DefaultingUndefined,
    )
    for name, func in FILTERS.items():
        env.filters[name] = _guarded_filter(name, func)
    return env


_ENV = _build_environment()


def _bound(state: _RenderState) -> _DocumentEnvironment:
    undefined = type(
        "BoundUndefined", (DefaultingUndefined,), {"__slots__": (), "_state": state}
    )
    return _ENV.overlay(undefined=undefined)


def _syntax_error(exc: JinjaSyntaxError) -> TemplateSyntaxError:
    return TemplateSyntaxError(exc.message or str(exc), exc.lineno)


# ── Static analysis ──────────────────────────────────────


def _dotted(node: nodes.Node) -> list[str] | None:
    if isinstance(node, nodes.Name):
        return [node.name]
    if isinstance(node, nodes.Getattr):
        head = _dotted(node.node)
        return None if head is None else [*head, node.attr]
    if (
        isinstance(node, nodes.Getitem)
        and isinstance(node.arg, nodes.Const)
        and isinstance(node.arg.value, (str, int))
    ):
        head = _dotted(node.node)
        return None if head is None else [*head, str(node.arg.value)]
    return None


def _expression_paths(node: nodes.Node) -> Iterator[list[str]]:
    dotted = _dotted(node)
    if dotted is not None:
        yield dotted
        return
    for child in node.iter_child_nodes():
        yield from _expression_paths(child)


def _has_default(node: nodes.Node) -> bool:
    while isinstance(node, nodes.Filter):
        if node.name in _SEES_UNDEFINED:
            return True
        node = node.node
    return False


def _filtered_base(node: nodes.Node) -> nodes.Node:
    while isinstance(node, nodes.Filter):
        node = node.node
    return node


def _canonical(dotted: list[str], scope: dict[str, str | None]) -> str | None:
    head, rest = dotted[0], dotted[1:]
    if head == "loop":
        return None
    if head in scope:
        base = scope[head]
        return None if base is None else ".".join([base, *rest])
    return ".".join(dotted)


def _guarded(name: str, guards: frozenset[str]) -> bool:
    return any(
        name == g or name.startswith(g + ".") or g.startswith(name + ".")
        for g in guards
    )


class _PathCollector:
    """Walks a parsed template for the paths a render would default.

    A condition guards only the branch it gates: paths tested by
    ``{% if x %}`` are not reported inside that branch, but the
    ``{% else %}`` branch is walked with the outer guards.
    """

    def __init__(self) -> None:
        self.found: set[str] = set()

    def walk(
        self,
        body: list[nodes.Node],
        scope: dict[str, str | None],
        guards: frozenset[str],
    ) -> None:
        for node in body:
            if isinstance(node, nodes.Output):
                for child in node.nodes:
                    self._output(child, scope, guards)
            elif isinstance(node, nodes.If):
                self._branch(node, scope, guards)
                for branch in node.elif_:
                    self._branch(branch, scope, guards)
                self.walk(node.else_, scope, guards)
            elif isinstance(node, nodes.For):
                self._loop(node, scope, guards)
            else:
                children = [
                    c for c in node.iter_child_nodes() if isinstance(c, nodes.Stmt)
                ]
                self.walk(children, scope, guards)

    def _output(
        self,
        node: nodes.Node,
        scope: dict[str, str | None],
        guards: frozenset[str],
    ) -> None:
        if isinstance(node, nodes.TemplateData) or _has_default(node):
            return
        dotted = _dotted(_filtered_base(node))
        name = None if dotted is None else _canonical(dotted, scope)
        if name is not None and not _guarded(name, guards):
            self.found.add(name)

    def _branch(
        self,
        node: nodes.If,
        scope: dict[str, str | None],
        guards: frozenset[str],
    ) -> None:
        tested = {
            name
            for dotted in _expression_paths(node.test)
            if (name := _canonical(dotted, scope)) is not None
        }
        self.walk(node.body, scope, guards | tested)

    def _loop(
        self,
        node: nodes.For,
        scope: dict[str, str | None],
        guards: frozenset[str],
    ) -> None:
        dotted = _dotted(node.iter)
        origin = None if dotted is None else _canonical(dotted, scope)
        if origin is not None and not _guarded(origin, guards):
            self.found.add(origin + "[]")
        inner = dict(scope)
        if isinstance(node.target, nodes.Name):
            inner[node.target.name] = f"{origin or node.target.name}[]"
        else:
            for target in node.target.find_all(nodes.Name):
                inner[target.name] = None
        self.walk(node.body, inner, guards)
        self.walk(node.else_, scope, guards)


# ── Renderer ─────────────────────────────────────────────


class TemplateRenderer:
    """Renders template source against a namespace mapping."""

    def render(
        self,
        body: str,
        namespace: Mapping[str, Any],
        policy: DefaultPolicy | None = None,
    ) -> RenderResult:
        """Render ``body``. Raises RenderFailure for malformed templates."""
        state = _RenderState(namespace=namespace, policy=policy or DefaultPolicy())
        env = _bound(state)
        try:
            template = env.from_string(body)
        except JinjaSyntaxError as exc:
            raise _syntax_error(exc) from exc
        try:
            content = template.render(state.root)
        except RenderFailure:
            raise
        except (JinjaTemplateError, TypeError, ValueError, ArithmeticError) as exc:
            raise RenderFailure(f"render failed: {exc}") from exc
        return RenderResult(content, frozenset(state.unresolved))

    def validate(self, body: str) -> None:
        """Raise TemplateSyntaxError if ``body`` does not compile."""
        try:
            _ENV.from_string(body)
        except JinjaSyntaxError as exc:
            raise _syntax_error(exc) from exc

    def referenced_paths(self, body: str) -> list[str]:
        """Paths whose absence would be filled by a default when rendering.

        Loop items appear as ``seq[]`` and their fields as ``seq[].field``.
        Outputs inside a branch gated on the same path and outputs with
        an explicit ``default`` filter are left out.
        """
        try:
            parsed = _ENV.parse(body)
        except JinjaSyntaxError as exc:
            raise _syntax_error(exc) from exc
        collector = _PathCollector()
        collector.walk(parsed.body, {}, frozenset())
        return sorted(collector.found)

    def fill_markers(
        self,
        text: str,
        namespace: Mapping[str, Any],
        policy: DefaultPolicy | None = None,
    ) -> RenderResult:
        """Substitute bare ``{{ path }}`` markers left in free text.

        Anything else that looks like braces (code samples, JSX) is left
        alone, so AI output never fails to parse here.
        """
        state = _RenderState(namespace=namespace, policy=policy or DefaultPolicy())
        env = _bound(state)

        def replace(match: re.Match[str]) -> str:
            head, *rest = match.group(1).split(".")
            value = env.getattr(state.root, head)
            for part in rest:
                if part.isdigit():
                    value = env.getitem(value, int(part))
                else:
                    value = env.getattr(value, part)
            return to_text(value)

        content = MARKER.sub(replace, text)
        return RenderResult(content, frozenset(state.unresolved))
