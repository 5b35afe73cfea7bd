import pytest
from lxml import etree

from liberalfeed import (
    Configuration,
    escape_entities,
    sanitize_html,
    strip_html,
    tidy_html,
    unescape_entities,
)
from liberalfeed.text import extract_xhtml, process_text_construct, strip_wrapper_element


def test_sanitize_keeps_comments():
    assert sanitize_html("<!--foo-->") == "<!--foo-->"


def test_sanitize_keeps_upper_case_tags():
    assert sanitize_html("<P>Upper-case tags</P>") == "<P>Upper-case tags</P>"


def test_sanitize_keeps_upper_case_attributes():
    assert (
        sanitize_html("<A HREF='/dev/null'>Upper-case attributes</A>")
        == '<A HREF="/dev/null">Upper-case attributes</A>'
    )


def test_sanitize_strips_script_with_content():
    assert sanitize_html("<script>evil()</script>hi") == "hi"
    assert (
        sanitize_html("<p>Hello<script>alert('x')</script> world</p>")
        == "<p>Hello world</p>"
    )


def test_sanitize_strips_unknown_attributes():
    assert sanitize_html('<p onclick="evil()" class="note">x</p>') == '<p class="note">x</p>'


def test_sanitize_strips_javascript_urls():
    assert sanitize_html('<a href="javascript:alert(1)">x</a>') == "<a>x</a>"


def test_sanitize_nofollow():
    assert (
        sanitize_html('<a href="http://example.com/" rel="me">x</a>', nofollow=True)
        == '<a href="http://example.com/" rel="nofollow">x</a>'
    )


def test_sanitize_escape_mode():
    assert (
        sanitize_html("<p>Hi<blink>x</blink></p>", "escape")
        == "<p>Hi&lt;blink&gt;x&lt;/blink&gt;</p>"
    )


def test_sanitize_unknown_mode():
    with pytest.raises(ValueError):
        sanitize_html("<p>x</p>", "remove")


def test_sanitize_blank_input():
    assert sanitize_html(None) is None
    assert sanitize_html("  ") == "  "


def test_sanitize_html_entities():
    assert sanitize_html("caf&eacute; &copy; 2020") == "caf\xe9 \xa9 2020"


def test_escape_and_unescape_entities():
    assert escape_entities('<a href="x">') == "&lt;a href=&quot;x&quot;&gt;"
    assert unescape_entities("Tom &amp; Jerry &#38; friends") == "Tom & Jerry & friends"
    assert unescape_entities("&lt;b&gt;") == "<b>"
    assert escape_entities(None) is None


def test_strip_html():
    assert strip_html("<b>bold</b> text") == "bold text"


def test_tidy_disabled_returns_input():
    assert tidy_html("<p>unclosed") == "<p>unclosed"


def test_tidy_with_lxml():
    assert tidy_html("<p>unclosed", Configuration(tidy_enabled=True)) == "<p>unclosed</p>"


def test_tidy_with_custom_function():
    config = Configuration(tidy_enabled=True, tidy_function=str.upper)
    assert tidy_html("<p>x</p>", config) == "<P>X</P>"


def test_extract_xhtml_default_namespace():
    node = etree.fromstring(
        "<content><div xmlns='http://www.w3.org/1999/xhtml'><em>Testing.</em></div></content>"
    )
    assert extract_xhtml(node) == "<div><em>Testing.</em></div>"


def test_extract_xhtml_prefixed():
    node = etree.fromstring(
        "<content xmlns:xhtml='http://www.w3.org/1999/xhtml'>"
        "<xhtml:div><xhtml:em>Testing.</xhtml:em></xhtml:div>"
        "</content>"
    )
    assert extract_xhtml(node) == "<div><em>Testing.</em></div>"


def test_extract_xhtml_keeps_foreign_namespaces():
    node = etree.fromstring(
        """<content type="xhtml" xmlns:xhtml='http://www.w3.org/1999/xhtml'>
        <xhtml:div xmlns='http://hsivonen.iki.fi/FooML'>
          <xhtml:ul>
            <xhtml:li>XHTML List Item</xhtml:li>
          </xhtml:ul>
          <ul>
            <li>FooML List Item</li>
          </ul>
        </xhtml:div>
        </content>"""
    )
    xhtml = extract_xhtml(node)
    assert "<div>" in xhtml
    assert "</div>" in xhtml
    assert "hsivonen.iki.fi" in xhtml
    assert "<ul xmlns=" in xhtml


def test_text_construct_base64():
    node = etree.fromstring('<title type="base64">SGVsbG8gV29ybGQ=</title>')
    assert process_text_construct(node) == "Hello World"


def test_text_construct_atom_text_is_escaped():
    node = etree.fromstring(
        '<title xmlns="http://www.w3.org/2005/Atom" type="text">A &lt;b&gt; tag</title>'
    )
    assert process_text_construct(node) == "A &lt;b&gt; tag"


def test_text_construct_escaped_mode():
    node = etree.fromstring('<summary mode="escaped">&lt;b&gt;bold&lt;/b&gt;</summary>')
    assert process_text_construct(node) == "<b>bold</b>"


def test_text_construct_title_newlines():
    node = etree.fromstring("<title>Line one\nline two</title>")
    assert process_text_construct(node, is_title=True) == "Line one line two"


def test_text_construct_tab_spaces():
    node = etree.fromstring("<description>a\tb</description>")
    config = Configuration(tab_spaces=2)
    assert process_text_construct(node, config=config) == "a  b"


def test_text_construct_blank_is_none():
    assert process_text_construct(etree.fromstring("<title>   </title>")) is None
    assert process_text_construct(None) is None


def test_strip_wrapper_element():
    assert strip_wrapper_element("<div class='x'> <p>kept</p> </div>") == "<p>kept</p>"
    assert strip_wrapper_element(" plain text ") == "plain text"
    assert strip_wrapper_element(None) is None


def test_strip_wrapper_element_leaves_sibling_divs():
    assert strip_wrapper_element(" <div>a</div><div>b</div> ") == "<div>a</div><div>b</div>"


def test_strip_wrapper_element_only_unwraps_div():
    assert strip_wrapper_element("<p>only</p>") == "<p>only</p>"
    assert strip_wrapper_element("<DIV>upper</DIV>") == "upper"
    assert strip_wrapper_element("intro <div>x</div>") == "intro <div>x</div>"
