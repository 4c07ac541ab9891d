"""
Exclusion rules for markup extraction.

Decides whether a position in a JSX/TSX/HTML document sits inside a subtree
the user asked to skip (e.g. 'script', 'div.no-translate', 'section#legal').

The document is tokenised once into tag open/close events. For a queried
position the events before it are replayed through an explicit stack of open
ancestors, and the position is excluded when any ancestor matches any rule.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

TAG_PATTERN = re.compile(r'<\/?([a-zA-Z0-9-]+)([^>]*)>')
SELF_CLOSING_PATTERN = re.compile(r'\/\s*>$')

RULE_TAG_PATTERN = re.compile(r'^([a-zA-Z0-9-]+)')
RULE_ID_PATTERN = re.compile(r'#([a-zA-Z0-9-_]+)')
RULE_CLASS_PATTERN = re.compile(r'\.([a-zA-Z0-9-_]+)')

ID_ATTR_PATTERN = re.compile(r'id\s*=\s*["\']([^"\']+)["\']', re.IGNORECASE)
CLASS_ATTR_PATTERN = re.compile(r'class\s*=\s*["\']([^"\']+)["\']', re.IGNORECASE)
CLASSNAME_ATTR_PATTERN = re.compile(r'className\s*=\s*["\']([^"\']+)["\']', re.IGNORECASE)
CLASSNAME_EXPR_PATTERN = re.compile(r'className\s*=\s*\{[^}]*["\']([^"\']+)["\'][^}]*\}', re.IGNORECASE)

OPEN = "open"
CLOSE = "close"
SELF_CLOSING = "self_closing"


@dataclass
class ExcludeRule:
    """A parsed selector: tag, tag.class, tag#id, tag.c1.c2 (tag optional)."""
    tag: Optional[str] = None
    id: Optional[str] = None
    classes: List[str] = field(default_factory=list)


@dataclass
class TagContext:
    """An open ancestor tag with its id and classes."""
    tag: str
    id: Optional[str] = None
    classes: List[str] = field(default_factory=list)
    position: int = 0


@dataclass
class TagEvent:
    kind: str
    position: int
    context: TagContext


def parse_exclude_rules(selectors: Optional[Iterable[str]]) -> List[ExcludeRule]:
    """
    Parse selectors into structured rules.

    Supports: 'div', 'h1.container', 'div#header', 'button.primary.large',
    '.no-translate', '#footer'.

    Example:
        >>> parse_exclude_rules(['div#header.dark'])
        [ExcludeRule(tag='div', id='header', classes=['dark'])]
    """
    rules = []
    for selector in selectors or []:
        if not isinstance(selector, str) or not selector.strip():
            continue

        rule = ExcludeRule()
        remaining = selector.strip()

        tag_match = RULE_TAG_PATTERN.match(remaining)
        if tag_match:
            rule.tag = tag_match.group(1).lower()
            remaining = remaining[tag_match.end():]

        id_match = RULE_ID_PATTERN.search(remaining)
        if id_match:
            rule.id = id_match.group(1)
            remaining = remaining.replace(id_match.group(0), "", 1)

        rule.classes = RULE_CLASS_PATTERN.findall(remaining)
        rules.append(rule)

    return rules


def _split_classes(value: str) -> List[str]:
    return [c for c in re.split(r'\s+', value) if c]


def parse_tag_context(tag_name: str, attrs_chunk: str, position: int) -> TagContext:
    """Build the id/class context of an opening tag from its attribute text."""
    context = TagContext(tag=tag_name, position=position)

    id_match = ID_ATTR_PATTERN.search(attrs_chunk)
    if id_match:
        context.id = id_match.group(1)

    class_match = CLASS_ATTR_PATTERN.search(attrs_chunk)
    if class_match:
        context.classes = _split_classes(class_match.group(1))

    # JSX className="..."
    classname_match = CLASSNAME_ATTR_PATTERN.search(attrs_chunk)
    if classname_match:
        context.classes = context.classes + _split_classes(classname_match.group(1))

    # JSX className={...}, best effort on the first quoted literal
    classname_expr_match = CLASSNAME_EXPR_PATTERN.search(attrs_chunk)
    if classname_expr_match:
        context.classes = context.classes + _split_classes(classname_expr_match.group(1))

    return context


def tokenize_tags(code: str) -> List[TagEvent]:
    """Scan the document into tag open/close/self-closing events, in order."""
    events = []
    for match in TAG_PATTERN.finditer(code):
        full_tag = match.group(0)
        tag_name = match.group(1).lower()
        position = match.start()

        if full_tag.startswith("</"):
            events.append(TagEvent(CLOSE, position, TagContext(tag=tag_name, position=position)))
        elif SELF_CLOSING_PATTERN.search(full_tag):
            events.append(TagEvent(SELF_CLOSING, position, TagContext(tag=tag_name, position=position)))
        else:
            context = parse_tag_context(tag_name, match.group(2) or "", position)
            events.append(TagEvent(OPEN, position, context))
    return events


def matches_rule(context: TagContext, rules: List[ExcludeRule]) -> bool:
    """Check if an ancestor matches any exclude rule."""
    for rule in rules:
        if rule.tag and rule.tag != context.tag:
            continue

        # Tag-only rule
        if rule.tag and not rule.id and not rule.classes:
            return True

        if rule.id and rule.id != context.id:
            continue

        if rule.classes and not all(cls in context.classes for cls in rule.classes):
            continue

        return True

    return False


class ExclusionMatcher:
    """Answers exclusion queries for one document against a set of rules."""

    def __init__(self, code: str, rules: List[ExcludeRule]):
        self.rules = rules
        self._events = tokenize_tags(code) if rules else []

    def open_tags_at(self, position: int) -> List[TagContext]:
        """Return the stack of tags still open strictly before position."""
        stack: List[TagContext] = []

        for event in self._events:
            if event.position >= position:
                break

            if event.kind == CLOSE:
                # Nearest open tag of the same name, tolerating bad nesting
                for i in range(len(stack) - 1, -1, -1):
                    if stack[i].tag == event.context.tag:
                        del stack[i]
                        break
            elif event.kind == OPEN:
                stack.append(event.context)

        return stack

    def is_excluded(self, position: int) -> bool:
        if not self.rules:
            return False

        return any(matches_rule(ancestor, self.rules) for ancestor in self.open_tags_at(position))


def is_excluded(code: str, position: int, rules: List[ExcludeRule]) -> bool:
    """Check if the text at position lies inside an excluded tag."""
    return ExclusionMatcher(code, rules).is_excluded(position)
