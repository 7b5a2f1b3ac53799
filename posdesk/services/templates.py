"""Placeholder template engine used for receipts, invoices and quotes.

Only three constructs are understood::

    {{key}}                      scalar substitution
    {{#key}} ... {{/key}}        conditional block, kept when ``key`` is truthy
    {{#each list}} ... {{/each}} one fragment per element of ``list``

Template content is user editable, so nothing else is evaluated. Malformed
block structure raises :class:`TemplateSyntaxError` instead of producing a
half rendered document.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from functools import lru_cache
from typing import Any, List, Mapping, Sequence, Union

from posdesk.services.exceptions import TemplateSyntaxError

_TOKEN_RE = re.compile(r"\{\{\s*([^{}]*?)\s*\}\}")
_NAME_RE = re.compile(r"^[A-Za-z_@][A-Za-z0-9_.@-]*$")
_EACH_RE = re.compile(r"^#each(?:\s+(.*))?$")

_MISSING = object()


@dataclass
class _Text:
    text: str


@dataclass
class _Variable:
    name: str


@dataclass
class _Section:
    name: str
    position: int
    children: List["_Node"] = field(default_factory=list)


@dataclass
class _Each:
    name: str
    position: int
    children: List["_Node"] = field(default_factory=list)


_Node = Union[_Text, _Variable, _Section, _Each]


def _check_name(name: str, position: int) -> str:
    if not _NAME_RE.match(name):
        raise TemplateSyntaxError(f"Invalid block name {name!r}", position=position)
    return name


def _parse(content: str) -> List[_Node]:
    root: List[_Node] = []
    stack: List[Union[_Section, _Each]] = []

    def children() -> List[_Node]:
        return stack[-1].children if stack else root

    cursor = 0
    for match in _TOKEN_RE.finditer(content):
        body = match.group(1)
        position = match.start()
        if match.start() > cursor:
            children().append(_Text(content[cursor:match.start()]))
        cursor = match.end()

        each = _EACH_RE.match(body)
        if each:
            list_name = (each.group(1) or "").strip()
            if not list_name:
                raise TemplateSyntaxError("'#each' requires a list name", position=position)
            block = _Each(_check_name(list_name, position), position)
            children().append(block)
            stack.append(block)
        elif body.startswith("#"):
            block = _Section(_check_name(body[1:].strip(), position), position)
            children().append(block)
            stack.append(block)
        elif body.startswith("/"):
            name = body[1:].strip()
            if not stack:
                raise TemplateSyntaxError(f"Unexpected closing tag '{{{{/{name}}}}}'", position=position)
            opened = stack[-1]
            expected = "each" if isinstance(opened, _Each) else opened.name
            if name != expected:
                raise TemplateSyntaxError(
                    f"Closing tag '{{{{/{name}}}}}' does not match open block '{expected}'",
                    position=position,
                )
            stack.pop()
        elif _NAME_RE.match(body):
            children().append(_Variable(body))
        else:
            # Not a placeholder, e.g. literal braces in inline scripts.
            children().append(_Text(match.group(0)))

    if stack:
        opened = stack[-1]
        label = "#each " + opened.name if isinstance(opened, _Each) else "#" + opened.name
        raise TemplateSyntaxError(f"Block '{{{{{label}}}}}' is never closed", position=opened.position)
    if cursor < len(content):
        root.append(_Text(content[cursor:]))
    return root


def _lookup(data: Any, name: str) -> Any:
    if not isinstance(data, Mapping):
        return _MISSING
    if name in data:
        return data[name]
    if "." in name:
        current: Any = data
        for part in name.split("."):
            if not isinstance(current, Mapping) or part not in current:
                return _MISSING
            current = current[part]
        return current
    return _MISSING


def _stringify(value: Any) -> str:
    if value is None or value is _MISSING:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def _is_truthy(value: Any) -> bool:
    if value is _MISSING:
        return False
    return bool(value)


class Template:
    """A parsed template that can be rendered many times."""

    def __init__(self, nodes: List[_Node]) -> None:
        self._nodes = nodes

    @classmethod
    def parse(cls, content: str) -> "Template":
        return cls(_parse(content))

    def render(self, data: Mapping[str, Any]) -> str:
        parts: List[str] = []
        self._render_nodes(self._nodes, data, parts)
        return "".join(parts)

    def _render_nodes(self, nodes: Sequence[_Node], data: Any, out: List[str]) -> None:
        for node in nodes:
            if isinstance(node, _Text):
                out.append(node.text)
            elif isinstance(node, _Variable):
                out.append(_stringify(_lookup(data, node.name)))
            elif isinstance(node, _Section):
                if _is_truthy(_lookup(data, node.name)):
                    self._render_nodes(node.children, data, out)
            else:
                self._render_each(node, data, out)

    def _render_each(self, node: _Each, data: Any, out: List[str]) -> None:
        value = _lookup(data, node.name)
        if value is _MISSING or value is None:
            return
        if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Sequence):
            raise TemplateSyntaxError(
                f"'{node.name}' is not a list and cannot be iterated", position=node.position
            )
        for element in value:
            if not isinstance(element, Mapping):
                raise TemplateSyntaxError(
                    f"Elements of '{node.name}' must be key/value records", position=node.position
                )
            self._render_nodes(node.children, element, out)


@lru_cache(maxsize=128)
def compile_template(content: str) -> Template:
    return Template.parse(content)


def render_template(content: str, data: Mapping[str, Any]) -> str:
    """Render ``content`` against ``data`` in one call."""

    return compile_template(content).render(data)
