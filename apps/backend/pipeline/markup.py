"""
Site-markup compatibility shim.

The job board renders its label/value detail rows and layout wrappers with
build-generated class names that change between deployments. Everything
that depends on that markup lives here so drift is a one-place fix:

- rows are matched structurally (first/last text-bearing child of a list
  row, or dt/dd pairs), never by class name;
- class-name fragments below are compatibility hints only, versioned by
  MARKUP_VERSION.
"""

import re
from typing import Iterator, List, NamedTuple, Optional, Union

from bs4 import Comment, NavigableString, Tag

from .document import clean_text, element_text

MARKUP_VERSION = "2024.11"

# Class-name prefixes emitted by CSS-in-JS builds (styled-components, emotion)
GENERATED_CLASS_PREFIXES = ('sc-', 'css-')

# Tags that may be presentation-only wrappers when they carry a generated class
WRAPPER_TAGS = ['div', 'span', 'section']

# The block of discrete job facts (type, salary, location, ...) on a detail page
DETAIL_LIST_SELECTORS = [
    '[class*="job-details"]', '[class*="JobDetails"]', '[class*="jobDetails"]',
    '[class*="detail-list"]', '[class*="DetailList"]', '[data-testid*="job-details"]',
    'ul[class*="details"]', 'dl[class*="details"]',
]

SIDEBAR_SELECTORS = [
    'aside', '[class*="sidebar"]', '[class*="Sidebar"]', '[role="complementary"]',
]

CTA_SELECTORS = [
    'button', '[class*="cta"]', '[class*="CTA"]', '[class*="apply"]', '[class*="Apply"]',
    '[class*="signup"]', '[class*="SignUp"]', '[class*="banner"]',
]

# Row-bearing elements
ROW_TAGS = ['li', 'tr']

LABEL_SUFFIX_RE = re.compile(r'[\s:\-–—]+$')


class Row(NamedTuple):
    label: str
    value: str
    element: Tag


def has_generated_class(tag: Tag) -> bool:
    classes = tag.get('class') or []
    if isinstance(classes, str):
        classes = classes.split()
    return any(c.startswith(GENERATED_CLASS_PREFIXES) for c in classes)


def normalize_label(label: str) -> str:
    return LABEL_SUFFIX_RE.sub('', clean_text(label)).lower()


def _text_bearing_children(element: Tag) -> List[Union[Tag, NavigableString]]:
    children = []
    for child in element.children:
        if isinstance(child, Comment):
            continue
        if isinstance(child, NavigableString):
            if clean_text(str(child)):
                children.append(child)
        elif isinstance(child, Tag) and element_text(child):
            children.append(child)
    return children


def _row_parts(element: Tag) -> List[Union[Tag, NavigableString]]:
    """Text-bearing children, descending through single-child wrappers."""
    parts = _text_bearing_children(element)
    depth = 0
    while len(parts) == 1 and isinstance(parts[0], Tag) and depth < 5:
        inner = _text_bearing_children(parts[0])
        if not inner:
            break
        parts = inner
        depth += 1
    return parts


def row_from_element(element: Tag) -> Optional[Row]:
    """Map a list row to (label, value), or None if it is not a label/value pair."""
    parts = _row_parts(element)
    if len(parts) >= 2:
        label = normalize_label(element_text(parts[0]))
        value = element_text(parts[-1])
    elif len(parts) == 1:
        # "Label: value" rendered as one text run
        text = element_text(parts[0])
        if ':' not in text:
            return None
        raw_label, _, value = text.partition(':')
        label = normalize_label(raw_label)
        value = clean_text(value)
    else:
        return None

    if not label or not value or label == value.lower():
        return None
    # Long "labels" are prose, not row headers
    if len(label) > 40:
        return None
    return Row(label=label, value=value, element=element)


def iter_rows(root: Tag) -> Iterator[Row]:
    """Yield every label/value row under root, in document order."""
    for element in root.find_all(ROW_TAGS):
        row = row_from_element(element)
        if row:
            yield row

    for term in root.find_all('dt'):
        definition = term.find_next_sibling('dd')
        if definition is None:
            continue
        label = normalize_label(element_text(term))
        value = element_text(definition)
        if label and value:
            yield Row(label=label, value=value, element=definition)
