from liberalfeed import parse


def test_parse_str_with_non_utf8_xml_declaration():
    xml = (
        '<?xml version="1.0" encoding="iso-8859-1"?>'
        '<rss version="2.0">'
        "<channel>"
        "<title>café</title>"
        "<item><title>café</title></item>"
        "</channel>"
        "</rss>"
    )
    feed = parse(xml)
    assert feed.title == "café"
    assert feed.entries[0].title == "café"


def test_parse_bytes_with_non_utf8_encoding():
    xml_bytes = (
        b'<?xml version="1.0" encoding="iso-8859-1"?>'
        b'<rss version="2.0">'
        b"<channel>"
        b"<title>caf\xe9</title>"
        b"<item><title>caf\xe9</title></item>"
        b"</channel>"
        b"</rss>"
    )
    feed = parse(xml_bytes)
    assert feed.encoding == "iso-8859-1"
    assert feed.title == "café"
    assert feed.entries[0].title == "café"


def test_parse_utf16_with_bom():
    xml = (
        '<?xml version="1.0" encoding="utf-16"?>'
        '<rss version="2.0"><channel><title>naïve</title></channel></rss>'
    )
    feed = parse(xml.encode("utf-16"))
    assert feed.encoding == "utf-16"
    assert feed.title == "naïve"


def test_content_type_charset_wins_over_declaration():
    xml_bytes = (
        b'<?xml version="1.0" encoding="utf-8"?>'
        b'<rss version="2.0"><channel><title>caf\xe9</title></channel></rss>'
    )
    feed = parse(xml_bytes, http_headers={"Content-Type": "text/xml; charset=windows-1252"})
    assert feed.encoding == "windows-1252"
    assert feed.encoding_from_xml_data == "utf-8"
    assert feed.title == "café"


def test_undecodable_bytes_fall_back_to_utf8():
    xml_bytes = b'<rss version="2.0"><channel><title>caf\xc3\xa9</title></channel></rss>'
    feed = parse(xml_bytes, http_headers={"Content-Type": "text/xml; charset=x-unknown"})
    assert feed.title == "café"


def test_html_entities_in_xml():
    feed = parse(
        '<rss version="2.0"><channel><title>caf&eacute; &amp; bar</title></channel></rss>'
    )
    assert feed.title == "café & bar"


def test_junk_before_document():
    feed = parse(
        b"Warning: something broke\n"
        b'<?xml version="1.0"?><rss version="2.0"><channel><title>x</title></channel></rss>'
    )
    assert feed.feed_type == "rss"
    assert feed.title == "x"


def test_byte_order_mark_in_str():
    feed = parse('\ufeff<rss version="2.0"><channel><title>x</title></channel></rss>')
    assert feed.title == "x"
