"""HTML 转 Markdown.

订阅源条目的正文通常是任意拼凑的 HTML 片段，这里统一转换为 Markdown：

- 标题使用 ATX 风格（#），代码块使用 ``` 围栏，列表使用 - 符号
- 粗体 **x**、斜体 _x_、删除线 ~~x~~
- 文本中的 Markdown 符号会被转义，代码块和行内代码保持原样
- 图片保留为 ![alt](src "title")，没有 src 的图片直接丢弃
- video / iframe / embed 不做转换，只输出一行指向 src 的占位链接
- 表格输出 GFM 表格

转换失败时返回原文，不会抛出异常。
"""

import logging
import re
from collections.abc import Callable

from bs4 import BeautifulSoup
from bs4.element import (
    Comment,
    Declaration,
    Doctype,
    NavigableString,
    ProcessingInstruction,
    Tag,
)

logger = logging.getLogger(__name__)

_HTML_TAG = re.compile(r"(?<!\\)<[a-z][\s\S]*>", re.IGNORECASE)
_MARKDOWN_CODE = re.compile(r"```[\s\S]*?```|`[^`\n]*`")
_BR_TAG = re.compile(r"<br\s*/?>", re.IGNORECASE)
_NBSP = re.compile(r"&nbsp;|&#160;|&#xa0;", re.IGNORECASE)
_EXCESS_NEWLINES = re.compile(r"\n{3,}")
_BLANK_LINES = re.compile(r"\n\s*\n")
_TRAILING_SPACE = re.compile(r"[ \t]+\n")
_INLINE_SPACE = re.compile(r"[ \t\r\f\v]+")
_SPACE_AROUND_NEWLINE = re.compile(r" *\n *")
_FLANKING = re.compile(r"^(\s*)(.*?)(\s*)$", re.DOTALL)

# 文本节点中的 Markdown 符号需要转义，行首规则允许一个前导空格
_ESCAPES = (
    (re.compile(r"\\"), r"\\\\"),
    (re.compile(r"\*"), r"\\*"),
    (re.compile(r"^( ?)-", re.MULTILINE), r"\1\\-"),
    (re.compile(r"^( ?)\+ ", re.MULTILINE), r"\1\\+ "),
    (re.compile(r"^( ?)(=+)", re.MULTILINE), r"\1\\\2"),
    (re.compile(r"^( ?)(#{1,6})( |$)", re.MULTILINE), r"\1\\\2\3"),
    (re.compile(r"`"), r"\\`"),
    (re.compile(r"^( ?)~~~", re.MULTILINE), r"\1\\~~~"),
    (re.compile(r"\["), r"\\["),
    (re.compile(r"\]"), r"\\]"),
    (re.compile(r"^( ?)>", re.MULTILINE), r"\1\\>"),
    (re.compile(r"_"), r"\\_"),
    (re.compile(r"^( ?)(\d+)\. ", re.MULTILINE), r"\1\2\\. "),
    (re.compile(r"<(?=[a-z/!?])", re.IGNORECASE), r"\\<"),
)

_SKIPPED_TAGS = frozenset(
    {"script", "style", "noscript", "head", "template", "title", "meta", "link"}
)
_BLOCK_TAGS = frozenset(
    {
        "p",
        "div",
        "section",
        "article",
        "header",
        "footer",
        "main",
        "aside",
        "nav",
        "figure",
        "figcaption",
        "address",
        "details",
        "summary",
        "dl",
        "dt",
        "dd",
        "center",
    }
)
_IGNORED_NODES = (Comment, Declaration, Doctype, ProcessingInstruction)


def is_html(text: str) -> bool:
    """
    判断文本中是否包含 HTML 标签.

    Markdown 代码块、行内代码和转义的 \\< 中的标签不算，
    这样已经转换过的 Markdown 再次读取时不会被当作 HTML。
    """
    if not text:
        return False
    return bool(_HTML_TAG.search(_MARKDOWN_CODE.sub("", text)))


def escape_markdown(text: str) -> str:
    """转义纯文本中的 Markdown 符号."""
    for pattern, replacement in _ESCAPES:
        text = pattern.sub(replacement, text)
    return text


def ensure_markdown(text: str) -> str:
    """仅在内容包含 HTML 时转换，纯文本 / Markdown 原样返回."""
    if not text:
        return text
    if is_html(text):
        return html_to_markdown(text)
    return text


def html_to_markdown(html: str) -> str:
    """
    将 HTML 片段转换为 Markdown.

    Args:
        html: HTML 内容

    Returns:
        Markdown 文本；解析失败时返回原始输入
    """
    if not html or not html.strip():
        return ""

    try:
        # 预处理常见的 RSS HTML 问题
        cleaned = _BR_TAG.sub("\n", html)
        cleaned = _NBSP.sub(" ", cleaned).strip()

        soup = BeautifulSoup(cleaned, "lxml")
        root = soup.body or soup
        markdown = _MarkdownConverter().convert(root)
    except Exception as e:
        logger.warning(f"HTML 转 Markdown 失败，返回原文: {e}")
        return html

    markdown = _TRAILING_SPACE.sub("\n", markdown)
    return _EXCESS_NEWLINES.sub("\n\n", markdown).strip()


class _MarkdownConverter:
    """遍历 DOM 树并输出 Markdown."""

    def __init__(self) -> None:
        self._handlers: dict[str, Callable[[Tag], str]] = {
            "br": lambda node: "\n",
            "hr": lambda node: "\n\n---\n\n",
            "strong": lambda node: self._wrap(node, "**"),
            "b": lambda node: self._wrap(node, "**"),
            "em": lambda node: self._wrap(node, "_"),
            "i": lambda node: self._wrap(node, "_"),
            "del": lambda node: self._wrap(node, "~~"),
            "s": lambda node: self._wrap(node, "~~"),
            "strike": lambda node: self._wrap(node, "~~"),
            "code": self._code,
            "pre": self._pre,
            "blockquote": self._blockquote,
            "a": self._link,
            "img": self._image,
            "video": self._video,
            "iframe": self._embed,
            "embed": self._embed,
            "ul": lambda node: self._list(node, ordered=False),
            "ol": lambda node: self._list(node, ordered=True),
            "table": self._table,
        }
        for level in range(1, 7):
            self._handlers[f"h{level}"] = self._heading_handler(level)

    def convert(self, root: Tag) -> str:
        """转换根节点下的全部内容."""
        return self._children(root)

    def _children(self, node: Tag) -> str:
        return "".join(self._node(child) for child in node.children)

    def _node(self, node: object) -> str:
        if isinstance(node, _IGNORED_NODES):
            return ""
        if isinstance(node, NavigableString):
            return self._text(str(node))
        if not isinstance(node, Tag):
            return ""

        name = (node.name or "").lower()
        if name in _SKIPPED_TAGS:
            return ""

        handler = self._handlers.get(name)
        if handler is not None:
            return handler(node)
        if name in _BLOCK_TAGS:
            return self._block(node)
        return self._children(node)

    def _text(self, text: str) -> str:
        text = _INLINE_SPACE.sub(" ", text)
        text = _SPACE_AROUND_NEWLINE.sub("\n", text)
        return escape_markdown(text)

    def _inline(self, node: Tag) -> str:
        """渲染为单行文本（标题、表格单元格、链接文字）."""
        return " ".join(self._children(node).split())

    def _block(self, node: Tag) -> str:
        content = self._children(node).strip()
        if not content:
            return ""
        return f"\n\n{content}\n\n"

    def _heading_handler(self, level: int) -> Callable[[Tag], str]:
        def render(node: Tag) -> str:
            content = self._inline(node)
            if not content:
                return ""
            return f"\n\n{'#' * level} {content}\n\n"

        return render

    def _wrap(self, node: Tag, delimiter: str) -> str:
        content = self._children(node)
        match = _FLANKING.match(content)
        if match is None:
            return content
        leading, core, trailing = match.groups()
        if not core:
            return content
        # 首尾空白放在标记外侧，否则 Markdown 不识别
        return f"{leading}{delimiter}{core}{delimiter}{trailing}"

    def _code(self, node: Tag) -> str:
        text = node.get_text()
        if not text:
            return ""
        fence = "``" if "`" in text else "`"
        padding = " " if text.startswith("`") or text.endswith("`") else ""
        return f"{fence}{padding}{text}{padding}{fence}"

    def _pre(self, node: Tag) -> str:
        text = node.get_text().strip("\n")
        if not text.strip():
            return ""
        language = _code_language(node.find("code")) or _code_language(node)
        fence = "```"
        while fence in text:
            fence += "`"
        return f"\n\n{fence}{language}\n{text}\n{fence}\n\n"

    def _blockquote(self, node: Tag) -> str:
        content = _EXCESS_NEWLINES.sub("\n\n", self._children(node)).strip()
        if not content:
            return ""
        quoted = "\n".join(
            f"> {line}" if line else ">" for line in content.split("\n")
        )
        return f"\n\n{quoted}\n\n"

    def _link(self, node: Tag) -> str:
        content = self._inline(node)
        href = _attr(node, "href")
        if not href or href.lower().startswith("javascript:"):
            return content
        if not content:
            return ""
        return f"[{content}]({_escape_url(href)}{_title_part(node)})"

    def _image(self, node: Tag) -> str:
        src = _attr(node, "src")
        if not src:
            return ""
        alt = " ".join(_attr(node, "alt").split())
        return f"![{alt}]({_escape_url(src)}{_title_part(node)})"

    def _video(self, node: Tag) -> str:
        src = _attr(node, "src")
        if not src:
            source = node.find("source", src=True)
            src = _attr(source, "src") if isinstance(source, Tag) else ""
        if not src:
            return ""
        return f"\n[🎬 Video]({_escape_url(src)})\n"

    def _embed(self, node: Tag) -> str:
        src = _attr(node, "src")
        if not src:
            return ""
        return f"\n[🎬 Embedded Content]({_escape_url(src)})\n"

    def _list(self, node: Tag, ordered: bool) -> str:
        start = _list_start(node) if ordered else 1
        items: list[str] = []
        for index, item in enumerate(node.find_all("li", recursive=False)):
            marker = f"{start + index}. " if ordered else "- "
            content = _BLANK_LINES.sub("\n", self._children(item)).strip()
            # 续行与嵌套列表缩进到标记之后
            content = content.replace("\n", "\n" + " " * len(marker))
            items.append(marker + content)

        if not items:
            return ""
        return "\n\n" + "\n".join(items) + "\n\n"

    def _table(self, node: Tag) -> str:
        rows: list[list[str]] = []
        for row in node.find_all("tr"):
            # 跳过嵌套表格的行
            if row.find_parent("table") is not node:
                continue
            cells = [
                self._inline(cell).replace("|", "\\|")
                for cell in row.find_all(["th", "td"], recursive=False)
            ]
            if cells:
                rows.append(cells)

        if not rows:
            return ""

        width = max(len(row) for row in rows)
        rows = [row + [""] * (width - len(row)) for row in rows]
        lines = [_table_row(rows[0]), _table_row(["---"] * width)]
        lines.extend(_table_row(row) for row in rows[1:])

        caption = node.find("caption")
        caption_text = self._inline(caption) if isinstance(caption, Tag) else ""
        prefix = f"{caption_text}\n\n" if caption_text else ""
        return "\n\n" + prefix + "\n".join(lines) + "\n\n"


def _attr(node: Tag, name: str) -> str:
    value = node.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return (value or "").strip()


def _title_part(node: Tag) -> str:
    title = _attr(node, "title")
    if not title:
        return ""
    return ' "{}"'.format(title.replace('"', '\\"'))


def _escape_url(url: str) -> str:
    return url.replace(" ", "%20").replace("(", "%28").replace(")", "%29")


def _code_language(node: object) -> str:
    if not isinstance(node, Tag):
        return ""
    for css_class in node.get("class") or []:
        for prefix in ("language-", "lang-"):
            if css_class.startswith(prefix):
                return css_class[len(prefix) :]
    return ""


def _list_start(node: Tag) -> int:
    try:
        return int(_attr(node, "start") or 1)
    except ValueError:
        return 1


def _table_row(cells: list[str]) -> str:
    return "| " + " | ".join(cells) + " |"
