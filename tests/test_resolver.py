from lxml import etree

from liberalfeed import Resolver, resolve_all, resolve_first

TEST_NAMESPACES = {"testnamespace": "http://example.com/ns/"}


def tree(xml):
    return etree.fromstring(xml).getroottree()


def test_element_names_ignore_case():
    doc = tree("<RoOt><ChIlD>Test String #1</ChIlD></RoOt>")
    resolver = Resolver(TEST_NAMESPACES)
    assert resolver.first(doc, ["ROOT/child/text()"], select_value=True) == "Test String #1"


def test_prefixes_ignore_case():
    doc = tree(
        '<root xmlns:TESTnAmEsPace="http://example.com/ns/">'
        "<TESTnAmEsPace:ChIlD>Test String #2</TESTnAmEsPace:ChIlD>"
        "</root>"
    )
    resolver = Resolver(TEST_NAMESPACES)
    assert (
        resolver.first(doc, ["ROOT/testnamespace:child/text()"], select_value=True)
        == "Test String #2"
    )


def test_attribute_names_ignore_case():
    doc = tree('<RoOt><ChIlD AttRib="Test String #3" /></RoOt>')
    resolver = Resolver(TEST_NAMESPACES)
    assert resolver.first(doc, ["ROOT/child/@ATTRIB"], select_value=True) == "Test String #3"


def test_prefixed_attribute_names_ignore_case():
    doc = tree(
        '<RoOt xmlns:TESTnAmEsPace="http://example.com/ns/">'
        '<ChIlD TESTnAmEsPace:AttRib="Test String #4" />'
        "</RoOt>"
    )
    resolver = Resolver(TEST_NAMESPACES)
    assert (
        resolver.first(doc, ["ROOT/child/@testnamespace:ATTRIB"], select_value=True)
        == "Test String #4"
    )


def test_unknown_prefix_resolved_through_document():
    doc = tree('<root xmlns:foo="http://foo.example/"><foo:bar>x</foo:bar></root>')
    assert resolve_first(doc, "root/foo:bar/text()") == "x"


def test_queries_tried_in_order():
    doc = tree("<root><b>second</b><a>first</a></root>")
    assert resolve_first(doc, ["root/missing/text()", "root/a/text()", "root/b/text()"]) == "first"


def test_unprefixed_step_skips_prefixed_elements():
    doc = tree('<root xmlns:x="urn:x"><x:title>wrong</x:title><title>right</title></root>')
    assert resolve_first(doc, "root/title/text()") == "right"


def test_predicates():
    doc = tree(
        "<root>"
        '<link rel="alternate" href="http://example.com/"/>'
        '<link rel="self" href="http://example.com/feed"/>'
        "</root>"
    )
    assert resolve_first(doc, "root/link[@rel='self']/@href") == "http://example.com/feed"
    assert resolve_all(doc, "root/link[@href]/@rel") == ["alternate", "self"]


def test_element_results_are_elements():
    doc = tree("<root><channel><title>x</title></channel></root>")
    result = resolve_first(doc, "root/channel")
    assert isinstance(result, etree._Element)
    assert result.tag == "channel"


def test_no_match_is_none():
    doc = tree("<root><a>x</a></root>")
    assert resolve_first(doc, ["root/b/text()", "root/a/@missing"]) is None
    assert resolve_first(None, "root") is None
    assert resolve_all(doc, "root/b") == []


def test_blank_results_are_skipped():
    doc = tree("<root><a>   </a><b>skip</b><c>kept</c></root>")
    result = resolve_first(
        doc,
        ["root/a/text()", "root/b/text()", "root/c/text()"],
        is_blank=lambda value: value == "skip",
    )
    assert result == "kept"


def test_all_falls_back_to_bare_child_names():
    root = etree.fromstring(
        '<root xmlns:x="urn:x"><x:item>1</x:item><x:item>2</x:item></root>'
    )
    assert resolve_all(root, ["item"], select_value=True) == ["1", "2"]
    assert [local.text for local in resolve_all(root, "item")] == ["1", "2"]


def test_parent_and_self_steps():
    doc = tree("<root><a><b>x</b></a></root>")
    b = resolve_first(doc, "root/a/b")
    assert resolve_first(b, "../b/text()") == "x"
    assert resolve_first(b, "./text()") == "x"
