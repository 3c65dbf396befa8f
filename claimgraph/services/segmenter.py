import logging
import re
from typing import List

import spacy

from claimgraph.schemas.extraction import SentenceData

logger = logging.getLogger(__name__)

nlp = spacy.blank("en")
nlp.add_pipe("sentencizer")

HEADING_RE = re.compile(r"^(#{1,6})\s+(.*)$")
LIST_MARKER_RE = re.compile(r"^(?:[-*•]\s+|\d+\.\s+)")


def _normalize_whitespace(text: str) -> str:
    """Helper function for normalizing whitespace in the text.

    Args:
        text (str): The text to normalize.

    Returns:
        str: The normalized text.
    """
    if not text:
        return ""

    text = text.replace("“", '"').replace("”", '"').replace("’", "'")
    return re.sub(r"\s+", " ", text).strip()


def split_sentences(line: str) -> List[str]:
    """Splits a single line of prose into sentences with the spaCy sentencizer.

    Args:
        line (str): The line to split.

    Returns:
        List[str]: The non-empty sentences, in order.
    """
    text = _normalize_whitespace(line)
    if not text:
        return []

    doc = nlp(text)
    sents = [s.text.strip() for s in doc.sents if s.text.strip()]
    return sents or [text]


def split_markdown_into_sentences(text: str) -> List[SentenceData]:
    """Splits markdown text into ordered sentence records carrying their heading path.

    Heading lines update the heading stack and produce no sentence. List markers are
    stripped before splitting.

    Args:
        text (str): The raw post text, optionally with markdown headings.

    Returns:
        List[SentenceData]: The sentence records, empty for empty input.
    """
    records: List[SentenceData] = []
    headings: List[str] = []
    index = 0

    for raw_line in (text or "").split("\n"):
        line = raw_line.strip()
        if not line:
            continue

        heading = HEADING_RE.match(line)
        if heading:
            level = len(heading.group(1))
            del headings[level - 1:]
            while len(headings) < level - 1:
                headings.append("")
            headings.append(heading.group(2).strip())
            continue

        line = LIST_MARKER_RE.sub("", line)

        for sent in split_sentences(line):
            records.append(SentenceData(
                index=index,
                heading_path=[h for h in headings if h],
                sentence=sent,
            ))
            index += 1

    logger.debug("Split text into %d sentences", len(records))
    return records
