from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional

ATOM_10_NS = "http://www.w3.org/2005/Atom"
ATOM_03_NS = "http://purl.org/atom/ns#"
RSS_09_NS = "http://my.netscape.com/rdf/simple/0.9/"
RSS_10_NS = "http://purl.org/rss/1.0/"
RSS_11_NS = "http://purl.org/net/rss1.1#"
RDF_NS = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
XHTML_NS = "http://www.w3.org/1999/xhtml"
XML_NS = "http://www.w3.org/XML/1998/namespace"
DC_NS = "http://purl.org/dc/elements/1.1/"
CONTENT_NS = "http://purl.org/rss/1.0/modules/content/"
SYN_NS = "http://purl.org/rss/1.0/modules/syndication/"
TAXO_NS = "http://purl.org/rss/1.0/modules/taxonomy/"
ITUNES_NS = "http://www.itunes.com/dtds/podcast-1.0.dtd"
MEDIA_NS = "http://search.yahoo.com/mrss/"

ATOM_NAMESPACES = (ATOM_10_NS, ATOM_03_NS)

DEFAULT_NAMESPACES: Mapping[str, str] = MappingProxyType(
    {
        "admin": "http://webns.net/mvcb/",
        "ag": "http://purl.org/rss/1.0/modules/aggregation/",
        "annotate": "http://purl.org/rss/1.0/modules/annotate/",
        "atom10": ATOM_10_NS,
        "atom03": ATOM_03_NS,
        "atom-blog": "http://purl.org/atom-blog/ns#",
        "audio": "http://media.tangent.org/rss/1.0/",
        "blogChannel": "http://backend.userland.com/blogChannelModule",
        "blogger": "http://www.blogger.com/atom/ns#",
        "cc": "http://web.resource.org/cc/",
        "creativeCommons": "http://backend.userland.com/creativeCommonsRssModule",
        "co": "http://purl.org/rss/1.0/modules/company",
        "content": CONTENT_NS,
        "cp": "http://my.theinfo.org/changed/1.0/rss/",
        "dc": DC_NS,
        "dcterms": "http://purl.org/dc/terms/",
        "email": "http://purl.org/rss/1.0/modules/email/",
        "ev": "http://purl.org/rss/1.0/modules/event/",
        "icbm": "http://postneo.com/icbm/",
        "image": "http://purl.org/rss/1.0/modules/image/",
        "feedburner": "http://rssnamespace.org/feedburner/ext/1.0",
        "foaf": "http://xmlns.com/foaf/0.1/",
        "fm": "http://freshmeat.net/rss/fm/",
        "itunes": ITUNES_NS,
        "l": "http://purl.org/rss/1.0/modules/link/",
        "media": "http://search.yahoo.com/mrss",
        "pingback": "http://madskills.com/public/xml/rss/module/pingback/",
        "prism": "http://prismstandard.org/namespaces/1.2/basic/",
        "rdf": RDF_NS,
        "rdfs": "http://www.w3.org/2000/01/rdf-schema#",
        "ref": "http://purl.org/rss/1.0/modules/reference/",
        "reqv": "http://purl.org/rss/1.0/modules/richequiv/",
        "rss09": RSS_09_NS,
        "rss10": RSS_10_NS,
        "rss11": RSS_11_NS,
        "search": "http://purl.org/rss/1.0/modules/search/",
        "slash": "http://purl.org/rss/1.0/modules/slash/",
        "soap": "http://schemas.xmlsoap.org/soap/envelope/",
        "ss": "http://purl.org/rss/1.0/modules/servicestatus/",
        "str": "http://hacks.benhammersley.com/rss/streaming/",
        "sub": "http://purl.org/rss/1.0/modules/subscription/",
        "syn": SYN_NS,
        "taxo": TAXO_NS,
        "thr": "http://purl.org/rss/1.0/modules/threading/",
        "ti": "http://purl.org/rss/1.0/modules/textinput/",
        "trackback": "http://madskills.com/public/xml/rss/module/trackback/",
        "wfw": "http://wellformedweb.org/CommentAPI/",
        "wiki": "http://purl.org/rss/1.0/modules/wiki/",
        "xhtml": XHTML_NS,
        "xml": XML_NS,
    }
)


def build_namespace_table(
    extra: Optional[Mapping[str, str]] = None,
) -> Mapping[str, str]:
    """Return a read-only table keyed by lower-cased prefix.

    ``extra`` entries override the defaults for the same prefix.
    """
    table = {prefix.lower(): uri for prefix, uri in DEFAULT_NAMESPACES.items()}
    if extra:
        for prefix, uri in extra.items():
            table[prefix.lower()] = uri
    return MappingProxyType(table)


def same_namespace(left: Optional[str], right: Optional[str]) -> bool:
    if left is None or right is None:
        return left is right
    return left.rstrip("/") == right.rstrip("/")
