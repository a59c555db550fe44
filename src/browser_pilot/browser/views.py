"""
Browser State Views

Snapshot of the page as the agents see it: a pruned element tree holding the
interactive elements (each with a highlight index), the index -> element
selector map, and page/tab metadata.
"""

import hashlib
from dataclasses import dataclass, field
from typing import Any, Optional

# Attributes worth showing the model next to an element
DEFAULT_INCLUDE_ATTRIBUTES = (
    "title",
    "type",
    "name",
    "role",
    "aria-label",
    "placeholder",
    "value",
    "alt",
    "href",
)


@dataclass(eq=False)
class DOMElementNode:
    """
    One element of the pruned DOM tree.

    Only interactive elements and their ancestors are kept, so the tag path
    of an interactive element is still its full path from the document root.
    """

    tag_name: str
    xpath: str = ""
    attributes: dict[str, str] = field(default_factory=dict)
    text: str = ""
    is_interactive: bool = False
    highlight_index: Optional[int] = None
    children: list["DOMElementNode"] = field(default_factory=list)
    parent: Optional["DOMElementNode"] = field(default=None, repr=False)

    @classmethod
    def from_dict(
        cls, data: dict[str, Any], parent: Optional["DOMElementNode"] = None
    ) -> "DOMElementNode":
        """Build a tree from the nested dict produced by the page script."""
        node = cls(
            tag_name=data.get("tag_name", ""),
            xpath=data.get("xpath", ""),
            attributes=dict(data.get("attributes") or {}),
            text=data.get("text", ""),
            is_interactive=bool(data.get("is_interactive", False)),
            highlight_index=data.get("highlight_index"),
            parent=parent,
        )
        node.children = [cls.from_dict(child, node) for child in data.get("children", [])]
        return node

    def add_child(self, child: "DOMElementNode") -> "DOMElementNode":
        child.parent = self
        self.children.append(child)
        return child

    def branch_path(self) -> list[str]:
        """Tag names from the root down to (and including) this element."""
        path = []
        current: Optional[DOMElementNode] = self
        while current is not None:
            path.append(current.tag_name)
            current = current.parent
        path.reverse()
        return path

    def branch_path_hash(self) -> str:
        return hashlib.sha256("/".join(self.branch_path()).encode()).hexdigest()

    def iter_interactive(self):
        """Yield interactive elements in document order."""
        if self.highlight_index is not None:
            yield self
        for child in self.children:
            yield from child.iter_interactive()

    def clickable_elements_to_string(
        self, include_attributes: tuple[str, ...] = DEFAULT_INCLUDE_ATTRIBUTES
    ) -> str:
        """Render interactive elements as ``[index]<tag attrs>text</tag>`` lines."""
        lines = []
        for element in self.iter_interactive():
            attrs = " ".join(
                f'{key}="{value}"'
                for key, value in element.attributes.items()
                if key in include_attributes and value
            )
            attrs = f" {attrs}" if attrs else ""
            lines.append(
                f"[{element.highlight_index}]<{element.tag_name}{attrs}>"
                f"{element.text}</{element.tag_name}>"
            )
        return "\n".join(lines)

    def __repr__(self) -> str:
        extras = []
        if self.is_interactive:
            extras.append("interactive")
        if self.highlight_index is not None:
            extras.append(f"highlight:{self.highlight_index}")
        suffix = f" [{', '.join(extras)}]" if extras else ""
        return f"<{self.tag_name}>{suffix}"


SelectorMap = dict[int, DOMElementNode]


def build_selector_map(root: DOMElementNode) -> SelectorMap:
    return {element.highlight_index: element for element in root.iter_interactive()}


@dataclass
class TabInfo:
    page_id: int
    url: str
    title: str


@dataclass
class BrowserState:
    """What the agents know about the browser at one point in time."""

    element_tree: DOMElementNode
    selector_map: SelectorMap
    url: str = ""
    title: str = ""
    tabs: list[TabInfo] = field(default_factory=list)
    screenshot: Optional[str] = None  # base64 JPEG
    pixels_above: int = 0
    pixels_below: int = 0


def calc_branch_path_hash_set(state: BrowserState) -> set[str]:
    """
    Fingerprint the interactive elements of a page.

    One SHA-256 digest per interactive element, of its tag path from the
    document root. New elements appearing on the page make the set grow.
    """
    return {element.branch_path_hash() for element in state.selector_map.values()}
