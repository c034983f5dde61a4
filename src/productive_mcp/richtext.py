"""Markdown conversion for Productive rich-text fields.

Productive stores task descriptions as HTML; assistants write Markdown.
Page bodies use Productive's own JSON document format instead:

    {"type": "doc", "content": [{"type": "paragraph", "content": [...]}, ...]}

``markdown_to_doc`` renders the Markdown to HTML first and then walks the
HTML to build that tree, so both formats share one Markdown dialect.
"""
import json
from html.parser import HTMLParser
from typing import Optional

import markdown as md

HEADING_LEVELS = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 5, "h6": 6}
MAX_HEADING_LEVEL = 3
CONTAINERS = ("blockquote", "ul", "ol", "li")
INLINE_MARKS = {"strong": "strong", "b": "strong", "em": "em", "i": "em", "code": "code"}


def markdown_to_html(text: Optional[str]) -> Optional[str]:
    """Convert Markdown to HTML, passing blank input through unchanged."""
    if text is None or text.strip() == "":
        return text
    return md.markdown(text, extensions=["extra", "sane_lists", "nl2br"]).strip()


class _DocBuilder(HTMLParser):
    """Builds a Productive document from rendered Markdown HTML.

    Text outside a paragraph or heading (tight list items, loose blockquote
    text) is wrapped in an implicit paragraph that closes at the next block.
    """

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.doc: dict = {"type": "doc", "content": []}
        self._stack: list[dict] = [self.doc]
        self._implicit: set[int] = set()
        self._marks: list[tuple[str, dict]] = []
        self._pre: Optional[list[str]] = None

    @property
    def _top(self) -> dict:
        return self._stack[-1]

    def _append(self, node: dict) -> None:
        self._top.setdefault("content", []).append(node)

    def _close_implicit(self) -> None:
        if id(self._top) in self._implicit:
            self._implicit.discard(id(self._stack.pop()))

    def _open(self, node: dict) -> None:
        self._close_implicit()
        if self._top["type"] in ("paragraph", "heading"):
            # Block inside an inline container; end the container first
            self._stack.pop()
        self._append(node)
        self._stack.append(node)

    def _close(self, node_type: str) -> None:
        while len(self._stack) > 1:
            node = self._stack.pop()
            self._implicit.discard(id(node))
            if node["type"] == node_type:
                return

    def _text(self, text: str) -> None:
        if self._top["type"] not in ("paragraph", "heading"):
            if not text.strip():
                return
            paragraph = {"type": "paragraph", "content": []}
            self._append(paragraph)
            self._stack.append(paragraph)
            self._implicit.add(id(paragraph))
        node = {"type": "text", "text": text}
        if self._marks:
            node["marks"] = [mark for _, mark in self._marks]
        self._append(node)

    def handle_starttag(self, tag, attrs):
        if self._pre is not None:
            return
        if tag == "pre":
            self._close_implicit()
            self._pre = []
        elif tag in HEADING_LEVELS:
            level = min(HEADING_LEVELS[tag], MAX_HEADING_LEVEL)
            self._open({"type": "heading", "attrs": {"level": level}, "content": []})
        elif tag == "p":
            self._open({"type": "paragraph", "content": []})
        elif tag in CONTAINERS:
            self._open({"type": tag, "content": []})
        elif tag == "hr":
            self._close_implicit()
            self._append({"type": "divider"})
        elif tag == "br":
            self._text("\n")
        elif tag == "a":
            attributes = dict(attrs)
            link = {"href": attributes.get("href")}
            if attributes.get("title"):
                link["title"] = attributes["title"]
            self._marks.append((tag, {"type": "link", "attrs": link}))
        elif tag in INLINE_MARKS:
            self._marks.append((tag, {"type": INLINE_MARKS[tag]}))

    def handle_endtag(self, tag):
        if self._pre is not None:
            if tag == "pre":
                code = "".join(self._pre).rstrip("\n")
                self._pre = None
                self._append({
                    "type": "paragraph",
                    "content": [{"type": "text", "text": code, "marks": [{"type": "code"}]}] if code else [],
                })
            return
        if tag in HEADING_LEVELS:
            self._close("heading")
        elif tag == "p":
            self._close("paragraph")
        elif tag in CONTAINERS:
            self._close_implicit()
            self._close(tag)
        elif tag == "a" or tag in INLINE_MARKS:
            for index in range(len(self._marks) - 1, -1, -1):
                if self._marks[index][0] == tag:
                    del self._marks[index]
                    break

    def handle_data(self, data):
        if self._pre is not None:
            self._pre.append(data)
        elif data:
            self._text(data)


def markdown_to_doc(text: Optional[str]) -> dict:
    """Convert Markdown to a Productive document tree.

    Headings are capped at level 3 and fenced or indented code becomes a
    paragraph with a single code-marked text node.
    """
    builder = _DocBuilder()
    if text and text.strip():
        builder.feed(md.markdown(text, extensions=["extra", "sane_lists"]))
    builder.close()
    return builder.doc


def markdown_to_doc_json(text: Optional[str]) -> str:
    """``markdown_to_doc`` serialised the way the pages endpoint stores it."""
    return json.dumps(markdown_to_doc(text))
