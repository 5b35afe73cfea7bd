"""Entity handling, HTML sanitization and text-construct interpretation."""

from __future__ import annotations

import base64
import binascii
import html as _html_mod
import logging
import re
from html.entities import name2codepoint
from typing import Optional

from lxml import etree

from .config import DEFAULT_CONFIGURATION, Configuration
from .namespaces import ATOM_NAMESPACES, XHTML_NS
from .xpath import (
    copy_content,
    get_attribute,
    inner_xml,
    namespace_of,
    root_of,
    serialize_content,
    split_tag,
)

logger = logging.getLogger(__name__)

ACCEPTABLE_ELEMENTS = frozenset(
    """a abbr acronym address area b big blockquote br button caption center
    cite code col colgroup dd del dfn dir div dl dt em fieldset font form h1 h2
    h3 h4 h5 h6 hr i img input ins kbd label legend li map menu ol optgroup
    option p pre q s samp select small span strike strong sub sup table tbody
    td textarea tfoot th thead tr tt u ul var""".split()
)

ACCEPTABLE_ATTRIBUTES = frozenset(
    """abbr accept accept-charset accesskey action align alt axis border
    cellpadding cellspacing char charoff charset checked cite class clear cols
    colspan color compact coords datetime dir disabled enctype for frame
    headers height href hreflang hspace id ismap label lang longdesc maxlength
    media method multiple name nohref noshade nowrap prompt readonly rel rev
    rows rowspan rules scope selected shape size span src start summary
    tabindex target title type usemap valign value vspace width""".split()
)

_URI_ATTRIBUTES = frozenset(["action", "cite", "href", "longdesc", "src", "usemap"])
_VOID_ELEMENTS = "area|base|br|col|embed|hr|img|input|link|meta|param|source|wbr"
_XML_ENTITIES = frozenset(["amp", "lt", "gt", "quot", "apos"])

_RE_HTML_TAGS = re.compile(r"</?[^>]+>")
_RE_AMP_REFERENCE = re.compile(r"&#(?:x26|38);", re.IGNORECASE)
_RE_NAMED_ENTITY = re.compile(r"&([A-Za-z][A-Za-z0-9]*);")
_RE_STRAY_AMPERSAND = re.compile(
    r"&(?!#\d+;|#[xX][0-9a-fA-F]+;|[A-Za-z][A-Za-z0-9]*;)"
)
_RE_STRAY_LT = re.compile(r"<(?![A-Za-z/!?])")
_RE_START_TAG = re.compile(r"<[A-Za-z][^<>]*>")
_RE_UNQUOTED_ATTR = re.compile(r"""(\s+[\w:\-]+)=([^\s>"']+)""")
_RE_VOID_OPEN = re.compile(
    r"<(%s)(\s[^<>]*?)?\s*/?>" % _VOID_ELEMENTS, re.IGNORECASE
)
_RE_VOID_CLOSE = re.compile(r"</(?:%s)\s*>" % _VOID_ELEMENTS, re.IGNORECASE)
_RE_XML_DECL = re.compile(r"<\?xml[^>]*\?>", re.IGNORECASE)
_RE_DOCTYPE = re.compile(r"<!DOCTYPE[^>]*>", re.IGNORECASE)
_RE_INVALID_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f]")
_RE_JAVASCRIPT_URI = re.compile(r"^\s*(?:java|vb)script:", re.IGNORECASE)
_RE_CDATA = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.DOTALL)
_RE_COMMENT_COUNT = re.compile(r"\[\d*\]$")
_RE_WHITESPACE = re.compile(r"\s+")

_FRAGMENT_PARSER = etree.XMLParser(
    recover=True,
    resolve_entities=False,
    no_network=True,
    collect_ids=False,
)
_TIDY_PARSER = etree.HTMLParser(recover=True, no_network=True)


def escape_entities(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    escaped = _html_mod.escape(text, quote=False)
    return escaped.replace("'", "&apos;").replace('"', "&quot;")


def unescape_entities(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    return _html_mod.unescape(_RE_AMP_REFERENCE.sub("&amp;", text))


def strip_html(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    return _RE_HTML_TAGS.sub("", text)


def strip_wrapper_element(xml: Optional[str]) -> Optional[str]:
    """Unwrap a fragment that is a single ``div``, keeping its content.

    Any other fragment comes back stripped of surrounding whitespace.
    """
    if xml is None:
        return None
    try:
        holder = etree.fromstring("<holder>%s</holder>" % xml, parser=_FRAGMENT_PARSER)
    except (etree.XMLSyntaxError, ValueError) as e:
        logger.debug("Not unwrapping unparseable fragment: %s", e)
        return xml.strip()
    if holder is None or len(holder) != 1 or (holder.text or "").strip():
        return xml.strip()
    wrapper = holder[0]
    if not isinstance(wrapper.tag, str) or (wrapper.tail or "").strip():
        return xml.strip()
    if split_tag(wrapper.tag)[2].lower() != "div":
        return xml.strip()
    return serialize_content(wrapper).strip()


def _entity_to_reference(match: re.Match) -> str:
    name = match.group(1)
    if name in _XML_ENTITIES:
        return match.group(0)
    codepoint = name2codepoint.get(name)
    if codepoint is None:
        return "&amp;%s;" % name
    return "&#%d;" % codepoint


def _quote_attributes(match: re.Match) -> str:
    return _RE_UNQUOTED_ATTR.sub(r'\1="\2"', match.group(0))


def _prepare_fragment(html: str) -> str:
    html = _RE_INVALID_XML_CHARS.sub("", html)
    html = _RE_XML_DECL.sub("", html)
    html = _RE_DOCTYPE.sub("", html)
    html = _RE_AMP_REFERENCE.sub("&amp;", html)
    html = html.replace("&lt;!'", "&amp;lt;!'")
    html = _RE_NAMED_ENTITY.sub(_entity_to_reference, html)
    html = _RE_STRAY_AMPERSAND.sub("&amp;", html)
    html = _RE_STRAY_LT.sub("&lt;", html)
    html = _RE_START_TAG.sub(_quote_attributes, html)
    html = _RE_VOID_CLOSE.sub("", html)
    return _RE_VOID_OPEN.sub(lambda m: "<%s%s/>" % (m.group(1), m.group(2) or ""), html)


def _splice_text(element: etree._Element, text: Optional[str]) -> None:
    """Remove ``element`` from its parent, leaving ``text`` and its tail behind."""
    parent = element.getparent()
    previous = element.getprevious()
    replacement = (text or "") + (element.tail or "")
    if replacement:
        if previous is not None:
            previous.tail = (previous.tail or "") + replacement
        else:
            parent.text = (parent.text or "") + replacement
    parent.remove(element)


def _sanitize_children(parent: etree._Element, mode: str, nofollow: bool) -> None:
    for child in list(parent):
        if child.tag is etree.Comment:
            continue
        if not isinstance(child.tag, str):
            _splice_text(child, None)
            continue
        name = split_tag(child.tag)[2]
        if name.lower() not in ACCEPTABLE_ELEMENTS:
            if mode == "escape":
                _splice_text(
                    child, etree.tostring(child, encoding="unicode", with_tail=False)
                )
            else:
                _splice_text(child, None)
            continue
        if child.tag != name:
            child.tag = name
        for key in list(child.attrib):
            namespace, prefix, local = split_tag(key)
            lowered = local.lower()
            if (
                namespace is not None
                or prefix is not None
                or lowered not in ACCEPTABLE_ATTRIBUTES
                or (lowered in _URI_ATTRIBUTES and _RE_JAVASCRIPT_URI.match(child.get(key)))
            ):
                del child.attrib[key]
        if nofollow and name.lower() == "a":
            for key in list(child.attrib):
                if key.lower() == "rel":
                    del child.attrib[key]
            child.set("rel", "nofollow")
        _sanitize_children(child, mode, nofollow)


def sanitize_html(html: Optional[str], mode: str = "strip", nofollow: bool = False) -> Optional[str]:
    """Remove markup that is not on the allow-lists.

    Args:
        html: Markup fragment. Element and attribute case is preserved.
        mode: ``"strip"`` drops disallowed elements with their content,
            ``"escape"`` replaces them with their escaped source.
        nofollow: Add ``rel="nofollow"`` to every anchor.

    Returns:
        The sanitized fragment, or None for None input.

    Raises:
        ValueError: If ``mode`` is not ``"strip"`` or ``"escape"``.
    """
    if mode not in ("strip", "escape"):
        raise ValueError(f"Unknown sanitization mode {mode!r}")
    if html is None:
        return None
    if not html.strip():
        return html
    try:
        root = etree.fromstring(
            "<root>%s</root>" % _prepare_fragment(html), parser=_FRAGMENT_PARSER
        )
    except (etree.XMLSyntaxError, ValueError) as e:
        logger.debug("Falling back to tag stripping for unparseable HTML: %s", e)
        root = None
    if root is None:
        return escape_entities(strip_html(html))
    _sanitize_children(root, mode, nofollow)
    etree.cleanup_namespaces(root)
    return serialize_content(root)


def _repair_html(html: str) -> Optional[str]:
    document = "<html><body>%s</body></html>" % _RE_INVALID_XML_CHARS.sub("", html)
    try:
        root = etree.fromstring(document, parser=_TIDY_PARSER)
    except (etree.XMLSyntaxError, ValueError) as e:
        logger.debug("HTML repair failed: %s", e)
        return None
    if root is None:
        return None
    body = root.find("body")
    if body is None:
        return None
    return serialize_content(body).replace("&#38;", "&amp;")


def tidy_html(html: Optional[str], config: Configuration = DEFAULT_CONFIGURATION) -> Optional[str]:
    """Run ``html`` through the configured repair function when tidy is enabled.

    Without a ``tidy_function`` the markup is repaired with lxml's HTML parser.
    A blank repair result falls back to the stripped input.
    """
    if html is None or not config.tidy_enabled:
        return html
    repair = config.tidy_function or _repair_html
    tidy = repair(html)
    if (tidy is None or not tidy.strip()) and html.strip():
        return html.strip()
    return tidy


def extract_xhtml(node: Optional[etree._Element]) -> str:
    """Return a node's XHTML content with the XHTML namespace removed.

    Elements in other namespaces keep them through ``xmlns`` declarations.
    """
    if node is None:
        return ""
    holder = etree.Element("holder")
    copy_content(holder, node, frozenset([XHTML_NS]))
    return serialize_content(holder).strip()


def _first_cdata(node: etree._Element) -> Optional[str]:
    raw = etree.tostring(node, encoding="unicode", with_tail=False)
    if "<![CDATA[" not in raw:
        return None
    match = _RE_CDATA.search(raw)
    return match.group(1) if match else None


def _decode_base64(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    data = _RE_WHITESPACE.sub("", text)
    data += "=" * (-len(data) % 4)
    try:
        return base64.b64decode(data).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError) as e:
        logger.debug("Ignoring undecodable base64 content: %s", e)
        return None


def _lower_attribute(node: etree._Element, name: str) -> Optional[str]:
    value = get_attribute(node, name)
    if value is None or not value.strip():
        return None
    return value.strip().lower()


def process_text_construct(
    node: Optional[etree._Element],
    feed_type: Optional[str] = None,
    config: Configuration = DEFAULT_CONFIGURATION,
    is_title: bool = False,
    strip_comment_count: bool = False,
) -> Optional[str]:
    """Interpret a text-bearing element as HTML.

    The ``type``, ``mode`` and ``encoding`` attributes decide how the content
    is read (CDATA, base64, XHTML, escaped, plain text or raw markup). Raw
    content without child elements is unescaped first, so entity-escaped
    markup is sanitized as markup. The result is then sanitized,
    entity-repaired for raw markup, tidied and trimmed. Blank results come
    back as None.
    """
    if node is None or not isinstance(node, etree._Element):
        return None
    node_type = _lower_attribute(node, "type")
    mode = _lower_attribute(node, "mode")
    encoding = _lower_attribute(node, "encoding")
    if node_type is None and (
        namespace_of(node) in ATOM_NAMESPACES
        or namespace_of(root_of(node)) in ATOM_NAMESPACES
        or feed_type == "atom"
    ):
        node_type = "text"
    declared = {node_type, mode}

    repair = False
    cdata = _first_cdata(node)
    if cdata is not None:
        content: Optional[str] = cdata.strip()
    elif "base64" in (node_type, mode, encoding):
        content = _decode_base64(node.text)
    elif declared & {"xhtml", "xml", "application/xhtml+xml"} or namespace_of(node) == XHTML_NS:
        content = extract_xhtml(node)
    elif "escaped" in declared:
        content = unescape_entities(inner_xml(node))
    elif declared & {"text", "text/plain"}:
        content = escape_entities(unescape_entities(inner_xml(node)))
    else:
        content = inner_xml(node)
        if not len(node):
            content = unescape_entities(content)
        repair = True

    if content is not None and config.sanitization_enabled:
        content = sanitize_html(content, "strip", nofollow=config.sanitize_with_nofollow)
    if repair:
        content = unescape_entities(content)
    content = tidy_html(content, config)
    if content is None:
        return None
    if config.tab_spaces:
        content = content.replace("\t", " " * config.tab_spaces)
    if is_title:
        content = content.replace(">\n<", "><").replace("\n", " ")
        content = content.strip()
        if strip_comment_count:
            content = _RE_COMMENT_COUNT.sub("", content)
    content = content.strip()
    return content or None
