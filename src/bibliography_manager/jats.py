"""JATS XML to markdown conversion for abstracts returned by CrossRef."""
import logging
import re

from bs4 import BeautifulSoup, NavigableString, Tag

logger = logging.getLogger(__name__)

JATS_TAG_RE = re.compile(r"</?jats:", re.IGNORECASE)
HTML_TAG_RE = re.compile(r"<[^>]*>")

_HEADINGS = {f"h{level}": "#" * level for level in range(1, 7)}


def is_jats_content(content: str) -> bool:
    return bool(JATS_TAG_RE.search(content))


def strip_html(content: str) -> str:
    return re.sub(r"\s+", " ", HTML_TAG_RE.sub("", content)).strip()


def format_jats_to_markdown(content: str) -> str:
    """Convert a JATS (or plain HTML) abstract into markdown."""
    if not content or not content.strip():
        return ""

    if not is_jats_content(content):
        return strip_html(content)

    try:
        soup = BeautifulSoup(content, "html.parser")
        markdown = _node_to_markdown(soup)
    except Exception as e:  # bs4 raises assorted errors on broken markup
        logger.error(f"JATS conversion failed: {e}")
        return strip_html(content)

    return re.sub(r"\n{3,}", "\n\n", markdown).strip()


def _children_to_markdown(element: Tag) -> str:
    return "".join(_node_to_markdown(child) for child in element.children)


def _node_to_markdown(node) -> str:
    if isinstance(node, NavigableString):
        return str(node)
    if not isinstance(node, Tag):
        return ""

    tag_name = (node.name or "").lower()
    if tag_name.startswith("jats:"):
        return _jats_element_to_markdown(node, tag_name[len("jats:"):])

    result = _children_to_markdown(node)
    if tag_name == "p":
        return result + "\n\n"
    if tag_name in ("strong", "b"):
        return f"**{result}**"
    if tag_name in ("em", "i"):
        return f"*{result}*"
    if tag_name == "code":
        return f"`{result}`"
    if tag_name in ("ul", "ol"):
        return result + "\n"
    if tag_name == "li":
        return f"- {result}\n"
    if tag_name in _HEADINGS:
        return f"{_HEADINGS[tag_name]} {result}\n\n"
    if tag_name == "blockquote":
        return f"> {result}\n\n"
    if tag_name == "br":
        return "\n"
    return result


def _jats_element_to_markdown(element: Tag, jats_tag: str) -> str:
    if jats_tag in ("p", "article-title", "chapter-title"):
        return _children_to_markdown(element) + "\n\n"
    if jats_tag == "bold":
        return f"**{_children_to_markdown(element)}**"
    if jats_tag == "italic":
        return f"*{_children_to_markdown(element)}*"
    if jats_tag == "monospace":
        return f"`{_children_to_markdown(element)}`"
    if jats_tag == "list":
        return _children_to_markdown(element) + "\n"
    if jats_tag == "list-item":
        return f"- {_children_to_markdown(element).strip()}\n"
    if jats_tag == "sec":
        title = element.find("jats:title", recursive=False)
        result = ""
        if title is not None:
            result = f"## {_children_to_markdown(title).strip()}\n\n"
        for child in element.children:
            if child is not title:
                result += _node_to_markdown(child)
        return result
    if jats_tag == "abstract":
        return "\n" + _children_to_markdown(element) + "\n"
    if jats_tag == "kwd":
        return f"**{_children_to_markdown(element)}**"
    if jats_tag == "kwd-group":
        keywords = [_children_to_markdown(kwd) for kwd in element.find_all("jats:kwd")]
        return f"**Keywords:** {', '.join(keywords)}\n\n"
    # jats:title outside a section and unknown tags keep only their text
    return _children_to_markdown(element)
