"""Classify a content tree into typed Markdown blocks.

Blocks are produced class by class in a fixed order, not in document order:

    headings (all h1, then all h2 … h6) → paragraphs → unordered lists →
    ordered lists → code blocks → inline code → block quotes → tables →
    cards → images → srcset links → audio → video

Serialization is then a plain fold over the sequence (see
:mod:`markcrawl.extractors.markdown`).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from bs4 import BeautifulSoup, Tag

from .urlnorm import parse_srcset, resolve_url

# Elements removed from the working tree before classification
NON_CONTENT_TAGS: tuple[str, ...] = ("nav", "footer", "script", "style", "noscript")

_LANGUAGE_PREFIX = "language-"


@dataclass(frozen=True)
class Heading:
    level: int
    text: str

    def to_markdown(self) -> str:
        return f"{'#' * self.level} {self.text}\n\n"


@dataclass(frozen=True)
class Paragraph:
    text: str

    def to_markdown(self) -> str:
        return f"{self.text}\n\n"


@dataclass(frozen=True)
class ListBlock:
    items: tuple[str, ...]
    ordered: bool = False

    def to_markdown(self) -> str:
        if self.ordered:
            lines = [f"{i}. {item}\n" for i, item in enumerate(self.items, start=1)]
        else:
            lines = [f"* {item}\n" for item in self.items]
        return "\n" + "".join(lines) + "\n"


@dataclass(frozen=True)
class CodeBlock:
    text: str
    language: str = ""

    def to_markdown(self) -> str:
        return f"```{self.language}\n{self.text}\n```\n\n"


@dataclass(frozen=True)
class InlineCode:
    text: str

    def to_markdown(self) -> str:
        return f"`{self.text}`"


@dataclass(frozen=True)
class Quote:
    text: str

    def to_markdown(self) -> str:
        return f"> {self.text}\n\n"


@dataclass(frozen=True)
class Table:
    header: tuple[str, ...] | None
    rows: tuple[tuple[str, ...], ...]

    def to_markdown(self) -> str:
        # Cell text is not pipe-escaped.
        out = ["\n"]
        if self.header is not None:
            out.append("|" + "".join(f"{cell}|" for cell in self.header) + "\n")
            out.append("|" + "---|" * len(self.header) + "\n")
        for row in self.rows:
            out.append("|" + "".join(f"{cell}|" for cell in row) + "\n")
        out.append("\n")
        return "".join(out)


@dataclass(frozen=True)
class CardTitle:
    title: str
    url: str

    def to_markdown(self) -> str:
        return f"## [{self.title}]({self.url})\n\n"


@dataclass(frozen=True)
class CardText:
    text: str

    def to_markdown(self) -> str:
        return f"{self.text}\n\n"


@dataclass(frozen=True)
class Image:
    alt: str
    url: str

    def to_markdown(self) -> str:
        return f"![{self.alt}]({self.url})\n\n"


@dataclass(frozen=True)
class MediaLink:
    kind: str  # "Image" | "Audio" | "Video"
    url: str

    def to_markdown(self) -> str:
        return f"[{self.kind} Link]({self.url})\n\n"


Block = Union[
    Heading, Paragraph, ListBlock, CodeBlock, InlineCode, Quote, Table,
    CardTitle, CardText, Image, MediaLink,
]


def strip_non_content(soup: BeautifulSoup) -> None:
    """Remove navigation, footer, script and style elements from *soup* in-place."""
    for el in soup.find_all(NON_CONTENT_TAGS):
        if isinstance(el, Tag) and not el.decomposed:
            el.decompose()


def _text(el: Tag) -> str:
    return el.get_text().strip()


def _attr(el: Tag, name: str) -> str:
    val = el.get(name)
    if val is None:
        return ""
    if isinstance(val, list):
        return " ".join(str(v) for v in val)
    return str(val)


def _code_language(code: Tag) -> str:
    """Language from a ``language-*`` class on the code element's parent ``<pre>``."""
    parent = code.parent
    if not isinstance(parent, Tag):
        return ""
    for cls in parent.get("class") or []:
        if isinstance(cls, str) and cls.startswith(_LANGUAGE_PREFIX):
            return cls[len(_LANGUAGE_PREFIX):]
    return ""


def _table_body_rows(table: Tag) -> list[Tag]:
    if table.find("tbody") is not None:
        return [tr for tr in table.select("tbody tr") if isinstance(tr, Tag)]
    # lxml does not synthesize <tbody>; rows outside <thead>/<tfoot> are the body.
    return [
        tr for tr in table.find_all("tr")
        if isinstance(tr, Tag) and tr.find_parent(["thead", "tfoot"]) is None
    ]


def _table_block(table: Tag) -> Table:
    header_row = table.select_one("thead tr")
    header = None
    if isinstance(header_row, Tag):
        header = tuple(_text(th) for th in header_row.find_all("th"))
    rows = tuple(
        tuple(_text(td) for td in tr.find_all("td"))
        for tr in _table_body_rows(table)
    )
    return Table(header=header, rows=rows)


def _headings(soup: BeautifulSoup) -> list[Block]:
    blocks: list[Block] = []
    for level in range(1, 7):
        for h in soup.find_all(f"h{level}"):
            blocks.append(Heading(level=level, text=_text(h)))
    return blocks


def _paragraphs(soup: BeautifulSoup) -> list[Block]:
    blocks: list[Block] = []
    for p in soup.find_all("p"):
        text = _text(p)
        if text:
            blocks.append(Paragraph(text=text))
    return blocks


def _lists(soup: BeautifulSoup, tag_name: str) -> list[Block]:
    ordered = tag_name == "ol"
    return [
        ListBlock(items=tuple(_text(li) for li in lst.find_all("li")), ordered=ordered)
        for lst in soup.find_all(tag_name)
    ]


def _code(soup: BeautifulSoup) -> list[Block]:
    blocks: list[Block] = [
        CodeBlock(text=_text(code), language=_code_language(code))
        for code in soup.select("pre code")
    ]
    for code in soup.find_all("code"):
        parent = code.parent
        if isinstance(parent, Tag) and parent.name == "pre":
            continue
        blocks.append(InlineCode(text=_text(code)))
    return blocks


def _cards(soup: BeautifulSoup, base_url: str) -> list[Block]:
    blocks: list[Block] = []
    for card in soup.select(".card-body"):
        for link in card.select("h2.card-title a"):
            blocks.append(
                CardTitle(title=_text(link), url=resolve_url(base_url, _attr(link, "href"))),
            )
        for desc in card.select("h4.card-text"):
            blocks.append(CardText(text=_text(desc)))
    return blocks


def _media(soup: BeautifulSoup, base_url: str) -> list[Block]:
    blocks: list[Block] = []
    for img in soup.find_all("img"):
        src = _attr(img, "src")
        if src:
            blocks.append(Image(alt=_attr(img, "alt"), url=resolve_url(base_url, src)))

    for el in soup.select("picture source[srcset]") + soup.select("img[srcset]"):
        for candidate in parse_srcset(_attr(el, "srcset")):
            blocks.append(MediaLink(kind="Image", url=resolve_url(base_url, candidate)))

    for kind, selector in (("Audio", "audio source, audio"), ("Video", "video source, video")):
        for el in soup.select(selector):
            src = _attr(el, "src")
            if src:
                blocks.append(MediaLink(kind=kind, url=resolve_url(base_url, src)))
    return blocks


def classify_blocks(soup: BeautifulSoup, base_url: str) -> list[Block]:
    """Return the typed blocks of *soup* in the fixed emission order.

    The tree is only read; call :func:`strip_non_content` first to drop
    navigation and script content.
    """
    blocks: list[Block] = []
    blocks.extend(_headings(soup))
    blocks.extend(_paragraphs(soup))
    blocks.extend(_lists(soup, "ul"))
    blocks.extend(_lists(soup, "ol"))
    blocks.extend(_code(soup))
    blocks.extend(Quote(text=_text(bq)) for bq in soup.find_all("blockquote"))
    blocks.extend(_table_block(table) for table in soup.find_all("table"))
    blocks.extend(_cards(soup, base_url))
    blocks.extend(_media(soup, base_url))
    return blocks
