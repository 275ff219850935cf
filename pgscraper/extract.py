from selectolax.lexbor import LexborHTMLParser

from pgscraper.aggregate import BusinessEntry
from pgscraper.config import SELECTORS


def css_text(node, selector) -> str:
    """Text of the first match, text nodes trimmed and joined by single spaces."""
    el = node.css_first(selector)
    if el is None:
        return ""
    return " ".join(el.text(deep=True, separator=" ").split())


def format_phones(raw: str) -> str:
    # "049 8751234 333 1234567" -> "049-8751234 | 333-1234567"
    tokens = raw.split()
    pairs = ["-".join(tokens[i:i + 2]) for i in range(0, len(tokens), 2)]
    return " | ".join(pairs)


def extract_entries(html: str) -> list[BusinessEntry]:
    """One entry per listing card on a result page; [] when the page has none."""
    if not html:
        return []
    doc = LexborHTMLParser(html)
    entries = []
    for item in doc.css(SELECTORS["listing_container"]):
        entries.append(BusinessEntry(
            name=css_text(item, SELECTORS["name"]),
            address=css_text(item, SELECTORS["address"]),
            phones=format_phones(css_text(item, SELECTORS["phone"])),
        ))
    return entries
