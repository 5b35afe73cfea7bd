"""Liberal path resolution over lxml trees.

Feeds in the wild mix namespaces, forget to declare prefixes and disagree on
the case of element names. The resolver in this module evaluates a small,
XPath-like path language with all of that in mind:

* element and attribute names are compared case-insensitively,
* a query prefix is first resolved through a namespace table and then by the
  prefix the document itself uses,
* every query in a list is tried in order and the first usable result wins.
"""

from __future__ import annotations

import html as _html_mod
import logging
import re
from functools import lru_cache
from typing import Any, Callable, Iterator, Mapping, NamedTuple, Optional, Sequence, Union

from lxml import etree

from .namespaces import XML_NS, build_namespace_table, same_namespace

logger = logging.getLogger(__name__)

_RE_STEP = re.compile(r"^(@)?([^\[\]@]+?)\s*((?:\[[^\]]*\])*)$")
_RE_PREDICATE = re.compile(r"\[\s*@([\w:.\-]+)\s*(?:=\s*(['\"])(.*?)\2)?\s*\]")
_RE_SIMPLE_NAME = re.compile(r"^\w+$")

Node = Union[etree._Element, etree._ElementTree]
Result = Union[etree._Element, str]


class _Predicate(NamedTuple):
    prefix: Optional[str]
    name: str
    value: Optional[str]


class _Step(NamedTuple):
    kind: str
    prefix: Optional[str] = None
    name: Optional[str] = None
    predicates: tuple[_Predicate, ...] = ()


def split_tag(tag: str) -> tuple[Optional[str], Optional[str], str]:
    """Split an lxml tag or attribute key into (namespace, literal prefix, local).

    The literal prefix is only set for names the parser could not bind to a
    namespace, e.g. ``itunes:author`` in a document that never declares
    ``itunes``.
    """
    if tag[:1] == "{":
        namespace, _, local = tag[1:].partition("}")
        return namespace, None, local
    if ":" in tag:
        prefix, _, local = tag.partition(":")
        return None, prefix, local
    return None, None, tag


def is_element(node: Any) -> bool:
    return isinstance(node, etree._Element) and isinstance(node.tag, str)


def local_name(element: etree._Element) -> str:
    return split_tag(element.tag)[2]


def namespace_of(element: etree._Element) -> Optional[str]:
    return split_tag(element.tag)[0]


def child_elements(node: Node) -> list[etree._Element]:
    if isinstance(node, etree._ElementTree):
        root = node.getroot()
        return [root] if root is not None else []
    return [child for child in node if isinstance(child.tag, str)]


def root_of(node: Node) -> Optional[etree._Element]:
    if isinstance(node, etree._ElementTree):
        return node.getroot()
    return node.getroottree().getroot()


def get_attribute(element: Optional[etree._Element], name: str) -> Optional[str]:
    """Case-insensitive lookup of an unqualified attribute."""
    if element is None:
        return None
    value = element.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, value in element.attrib.items():
        if split_tag(key)[2].lower() == lowered:
            return value
    return None


def _declared_namespace(element: etree._Element, prefix: str) -> Optional[str]:
    if prefix == "xml":
        return XML_NS
    for declared, uri in element.nsmap.items():
        if declared is not None and declared.lower() == prefix:
            return uri
    return None


def _document_prefix(element: etree._Element) -> Optional[str]:
    literal = split_tag(element.tag)[1]
    if literal is not None:
        return literal.lower()
    return element.prefix.lower() if element.prefix else None


def _text_nodes(element: etree._Element) -> list[str]:
    texts = [element.text] if element.text else []
    texts.extend(child.tail for child in element if child.tail)
    return [text for text in texts if text.strip()]


def _split_path(path: str) -> list[str]:
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    quote: Optional[str] = None
    for char in path:
        if quote:
            if char == quote:
                quote = None
        elif depth and char in "'\"":
            quote = char
        elif char == "[":
            depth += 1
        elif char == "]":
            depth = max(depth - 1, 0)
        elif char == "/" and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]


def _split_qname(qname: str) -> tuple[Optional[str], str]:
    prefix, sep, name = qname.partition(":")
    if not sep:
        return None, qname.lower()
    return prefix.lower(), name.lower()


@lru_cache(maxsize=1024)
def _compile(path: str) -> tuple[_Step, ...]:
    steps = []
    for part in _split_path(path):
        if part == ".":
            steps.append(_Step("self"))
            continue
        if part == "..":
            steps.append(_Step("parent"))
            continue
        if part == "text()":
            steps.append(_Step("text"))
            continue
        match = _RE_STEP.match(part)
        if match is None:
            raise ValueError(f"Unsupported path step {part!r} in {path!r}")
        is_attribute, qname, raw_predicates = match.groups()
        prefix, name = _split_qname(qname.strip())
        predicates = tuple(
            _Predicate(*_split_qname(attr), value if quote else None)
            for attr, quote, value in _RE_PREDICATE.findall(raw_predicates)
        )
        steps.append(
            _Step("attribute" if is_attribute else "element", prefix, name, predicates)
        )
    return tuple(steps)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _result_value(result: Result) -> Result:
    if isinstance(result, str):
        return result.strip()
    return result


class Resolver:
    """Evaluate liberal path queries against a namespace table.

    Args:
        namespaces: Extra prefix to namespace URI entries, merged over the
            default table.
    """

    def __init__(self, namespaces: Optional[Mapping[str, str]] = None) -> None:
        self._namespaces = build_namespace_table(namespaces)

    @property
    def namespaces(self) -> Mapping[str, str]:
        return self._namespaces

    def _target_namespace(
        self, element: etree._Element, prefix: str, aware: bool
    ) -> Optional[str]:
        if aware:
            target = self._namespaces.get(prefix)
            if target is not None:
                return target
        return _declared_namespace(element, prefix)

    def _element_matches(
        self, element: etree._Element, step: _Step, aware: bool
    ) -> bool:
        namespace, literal_prefix, local = split_tag(element.tag)
        if step.name != "*" and local.lower() != step.name:
            return False
        if step.prefix is None:
            return step.name == "*" or (
                literal_prefix is None and element.prefix is None
            )
        if aware:
            target = self._target_namespace(element, step.prefix, aware)
            if target is not None and namespace is not None:
                return same_namespace(namespace, target)
        return _document_prefix(element) == step.prefix

    def _attribute_values(
        self,
        element: etree._Element,
        prefix: Optional[str],
        name: str,
        aware: bool,
    ) -> Iterator[str]:
        for key, value in element.attrib.items():
            namespace, literal_prefix, local = split_tag(key)
            if local.lower() != name:
                continue
            if prefix is None:
                if not aware or (namespace is None and literal_prefix is None):
                    yield value
                continue
            if literal_prefix is not None:
                if literal_prefix.lower() == prefix:
                    yield value
                continue
            target = self._target_namespace(element, prefix, aware)
            if target is not None and same_namespace(namespace, target):
                yield value

    def _predicates_hold(
        self, element: etree._Element, predicates: Sequence[_Predicate], aware: bool
    ) -> bool:
        for predicate in predicates:
            values = list(
                self._attribute_values(element, predicate.prefix, predicate.name, aware)
            )
            if predicate.value is None:
                if not values:
                    return False
            elif predicate.value not in values:
                return False
        return True

    def evaluate(self, node: Node, path: str, aware: bool = True) -> list[Result]:
        """Return every match of ``path`` below ``node`` in document order."""
        current: list[Any] = [node]
        for step in _compile(path):
            matched: list[Any] = []
            for context in current:
                if isinstance(context, str):
                    continue
                if step.kind == "self":
                    matched.append(context)
                elif step.kind == "parent":
                    if isinstance(context, etree._Element):
                        parent = context.getparent()
                        if parent is not None:
                            matched.append(parent)
                elif step.kind == "text":
                    if isinstance(context, etree._Element):
                        matched.extend(_text_nodes(context))
                elif step.kind == "attribute":
                    if isinstance(context, etree._Element):
                        matched.extend(
                            self._attribute_values(context, step.prefix, step.name, aware)
                        )
                else:
                    for child in child_elements(context):
                        if self._element_matches(
                            child, step, aware
                        ) and self._predicates_hold(child, step.predicates, aware):
                            matched.append(child)
            current = matched
            if not current:
                break
        return current

    def first(
        self,
        node: Optional[Node],
        queries: Union[str, Sequence[str]],
        select_value: bool = False,
        is_blank: Optional[Callable[[Any], bool]] = None,
    ) -> Optional[Result]:
        """Return the first usable result of the first query that has one.

        Each query is evaluated namespace-aware and then namespace-unaware.
        Attribute and text matches come back as stripped strings and element
        matches as elements.

        Args:
            node: Element or tree the queries are relative to.
            queries: Ordered path expressions.
            select_value: Accepted for symmetry with :meth:`all`. lxml has no
                node objects for text and attributes, so those are always
                returned as values.
            is_blank: Predicate that rejects a candidate result.
        """
        if node is None:
            return None
        if isinstance(queries, str):
            queries = [queries]
        for query in queries:
            for aware in (True, False):
                for result in self.evaluate(node, query, aware):
                    value = _result_value(result)
                    if _is_blank(value) or (is_blank is not None and is_blank(value)):
                        continue
                    return value
        return None

    def all(
        self,
        node: Optional[Node],
        queries: Union[str, Sequence[str]],
        select_value: bool = False,
    ) -> list[Result]:
        """Return every match of the first query that yields anything.

        When no query matches, bare-word queries are retried against the local
        names of ``node``'s direct children, which recovers documents whose
        namespace prefixes went missing.
        """
        if node is None:
            return []
        if isinstance(queries, str):
            queries = [queries]
        for query in queries:
            for aware in (True, False):
                results = [
                    _result_value(result) for result in self.evaluate(node, query, aware)
                ]
                if results:
                    return results
        for query in queries:
            if not _RE_SIMPLE_NAME.match(query):
                continue
            wanted = query.lower()
            children = [
                child
                for child in child_elements(node)
                if local_name(child).lower() == wanted
            ]
            if children:
                logger.debug("Resolved %r by bare child-name fallback", query)
                if select_value:
                    return [inner_xml(child) for child in children]
                return list(children)
        return []


DEFAULT_RESOLVER = Resolver()


def resolve_first(
    node: Optional[Node],
    queries: Union[str, Sequence[str]],
    select_value: bool = False,
    is_blank: Optional[Callable[[Any], bool]] = None,
) -> Optional[Result]:
    return DEFAULT_RESOLVER.first(node, queries, select_value, is_blank)


def resolve_all(
    node: Optional[Node],
    queries: Union[str, Sequence[str]],
    select_value: bool = False,
) -> list[Result]:
    return DEFAULT_RESOLVER.all(node, queries, select_value)


def first_text(
    resolver: Resolver, node: Optional[Node], queries: Sequence[str]
) -> Optional[str]:
    """Resolve to a string, serializing element matches as inner XML."""
    result = resolver.first(node, queries, select_value=True)
    if result is None:
        return None
    if isinstance(result, str):
        return result
    return inner_xml(result).strip() or None


def _escape_text(text: Optional[str]) -> str:
    return _html_mod.escape(text, quote=False) if text else ""


def _append_text(parent: etree._Element, text: Optional[str]) -> None:
    if not text:
        return
    if len(parent):
        last = parent[-1]
        last.tail = (last.tail or "") + text
    else:
        parent.text = (parent.text or "") + text


def copy_content(
    target: etree._Element,
    source: etree._Element,
    strip_namespaces: frozenset[str],
) -> None:
    """Copy ``source``'s children into ``target`` with fresh namespace scopes.

    Elements in ``strip_namespaces`` lose their namespace. Other namespaced
    elements keep theirs and are re-declared where they are used. Comments are
    kept, processing instructions and entity references are dropped.
    """
    _append_text(target, source.text)
    for child in source:
        if child.tag is etree.Comment:
            target.append(etree.Comment(child.text))
        elif isinstance(child.tag, str):
            copied = _copy_element(target, child, strip_namespaces)
            if copied is None:
                copy_content(target, child, strip_namespaces)
        _append_text(target, child.tail)


def _copy_element(
    parent: etree._Element,
    source: etree._Element,
    strip_namespaces: frozenset[str],
) -> Optional[etree._Element]:
    namespace, _, local = split_tag(source.tag)
    try:
        if namespace is None or namespace in strip_namespaces:
            copied = etree.SubElement(parent, local)
        elif parent.nsmap.get(source.prefix) == namespace:
            copied = etree.SubElement(parent, "{%s}%s" % (namespace, local))
        else:
            copied = etree.SubElement(
                parent, "{%s}%s" % (namespace, local), nsmap={source.prefix: namespace}
            )
    except ValueError:
        logger.debug("Dropping element with invalid name %r", source.tag)
        return None
    for key, value in source.attrib.items():
        attr_namespace, _, attr_local = split_tag(key)
        try:
            if attr_namespace is None or attr_namespace in strip_namespaces:
                copied.set(attr_local, value)
            else:
                copied.set(key, value)
        except ValueError:
            continue
    copy_content(copied, source, strip_namespaces)
    return copied


def serialize_content(element: etree._Element) -> str:
    """Serialize an element's text and children, without the element itself."""
    parts = [_escape_text(element.text)]
    for child in element:
        parts.append(etree.tostring(child, encoding="unicode", with_tail=True))
    return "".join(parts)


def inner_xml(element: Optional[etree._Element]) -> str:
    """Return the markup between an element's start and end tags.

    Children in the element's default namespace are written without a
    namespace declaration.
    """
    if element is None:
        return ""
    default_namespace = element.nsmap.get(None)
    strip = frozenset([default_namespace]) if default_namespace else frozenset()
    holder = etree.Element("holder")
    copy_content(holder, element, strip)
    return serialize_content(holder)
