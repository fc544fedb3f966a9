"""Keyword-matching answer engine over a chatbot's knowledge base."""

import re
from dataclasses import dataclass
from typing import Sequence

import structlog

from sitechat.db.models.page_record import PageRecord

logger = structlog.get_logger(__name__)

GREETING_KEYWORDS = (
    "hi",
    "hello",
    "hey",
    "hola",
    "greetings",
    "good morning",
    "good afternoon",
    "good evening",
)

# Checked in this order; only the first match is stripped
STEM_SUFFIXES = (
    "ing",
    "tion",
    "ment",
    "ness",
    "able",
    "ible",
    "ful",
    "less",
    "ous",
    "ive",
    "ly",
    "es",
    "ed",
    "s",
)

DEFAULT_GREETING = "Hello! How can I help you today?"
NO_INFORMATION_RESPONSE = (
    "I'm sorry, I couldn't find information about that in my knowledge base. "
    "Could you try rephrasing your question or ask about something else?"
)

EXACT_MATCH_WEIGHT = 2.0
PREFIX_MATCH_WEIGHT = 1.0
STEM_MATCH_WEIGHT = 1.5

MIN_QUERY_WORD_LENGTH = 3
MIN_STEM_LENGTH = 3
MAX_PAGES_IN_ANSWER = 3
MAX_SNIPPET_SENTENCES = 3
FALLBACK_SNIPPET_LENGTH = 300

_WORD_RE = re.compile(r"\w+")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]")
# A keyword counts only as a whole word, so any message holding a greeting word
# short-circuits to the greeting while words like "this" or "which" do not.
_GREETING_RE = re.compile(
    r"\b(?:"
    + "|".join(r"\s+".join(re.escape(part) for part in k.split()) for k in GREETING_KEYWORDS)
    + r")\b"
)


@dataclass
class ScoredPage:
    """A knowledge base page with its relevance score."""

    page: PageRecord
    score: float
    position: int


def is_greeting(message: str) -> bool:
    """True if the message contains a greeting keyword as a whole word."""
    return _GREETING_RE.search(message.lower()) is not None


def tokenize(text: str) -> list[str]:
    """Lowercased words of the text."""
    return _WORD_RE.findall(text.lower())


def query_words(message: str) -> list[str]:
    """Words of the message longer than two characters, in order."""
    return [w for w in tokenize(message) if len(w) >= MIN_QUERY_WORD_LENGTH]


def stem(word: str) -> str:
    """Strip the first matching suffix from ``STEM_SUFFIXES``."""
    for suffix in STEM_SUFFIXES:
        if word.endswith(suffix):
            return word[: -len(suffix)]
    return word


def qualifying_stems(words: Sequence[str]) -> list[str]:
    """Stems long enough to match on, including words with no suffix to strip."""
    return [word_stem for word_stem in map(stem, words) if len(word_stem) >= MIN_STEM_LENGTH]


def score_page(page: PageRecord, words: Sequence[str], stems: Sequence[str]) -> float:
    """Lexical relevance of one page to the query.

    +2 per query word found in the page text, +1 per (query word, page word)
    pair where one is a prefix of the other, +1.5 per stem found in the page text.
    """
    text = f"{page.title} {page.content}".lower()
    page_words = tokenize(text)

    score = 0.0
    for word in words:
        if word in text:
            score += EXACT_MATCH_WEIGHT
        # Quadratic in page length; fine for the small corpora a crawl produces
        for page_word in page_words:
            if page_word.startswith(word) or word.startswith(page_word):
                score += PREFIX_MATCH_WEIGHT
    for word_stem in stems:
        if word_stem in text:
            score += STEM_MATCH_WEIGHT
    return score


def rank_pages(
    message: str, knowledge_base: Sequence[PageRecord]
) -> list[ScoredPage]:
    """Score every page and return those with a positive score, best first.

    Ties keep knowledge base order.
    """
    words = query_words(message)
    if not words:
        return []
    stems = qualifying_stems(words)

    scored = [
        ScoredPage(page=page, score=score_page(page, words, stems), position=i)
        for i, page in enumerate(knowledge_base)
    ]
    matched = [s for s in scored if s.score > 0]
    # sorted() is stable, so equal scores keep corpus order
    return sorted(matched, key=lambda s: s.score, reverse=True)


def extract_snippet(page: PageRecord, words: Sequence[str], stems: Sequence[str]) -> str:
    """Up to three sentences mentioning the query, or the start of the page."""
    terms = list(words) + list(stems)
    sentences = []
    for raw in _SENTENCE_SPLIT_RE.split(page.content):
        sentence = raw.strip()
        if not sentence:
            continue
        lowered = sentence.lower()
        if any(term in lowered for term in terms):
            sentences.append(sentence)
            if len(sentences) == MAX_SNIPPET_SENTENCES:
                break

    if sentences:
        return ". ".join(sentences) + "."

    content = page.content
    if len(content) > FALLBACK_SNIPPET_LENGTH:
        return content[:FALLBACK_SNIPPET_LENGTH] + "..."
    return content


def compose_answer(
    matches: Sequence[ScoredPage], words: Sequence[str], stems: Sequence[str]
) -> str:
    """Format the best matches into a reply."""
    top = list(matches)[:MAX_PAGES_IN_ANSWER]
    if len(top) == 1:
        page = top[0].page
        return f"Based on information from **{page.title}**:\n\n{extract_snippet(page, words, stems)}"

    blocks = [
        f"**{match.page.title}:**\n{extract_snippet(match.page, words, stems)}" for match in top
    ]
    return f"I found relevant information from {len(top)} pages:\n\n" + "\n\n".join(blocks)


def answer(
    message: str,
    knowledge_base: Sequence[PageRecord],
    greeting_messages: Sequence[str] | None = None,
) -> str:
    """Answer a chat message from the knowledge base.

    Greetings win over knowledge lookups. Never raises on a retrieval miss.

    Args:
        message: End-user message
        knowledge_base: Pages the chatbot knows about
        greeting_messages: Configured greetings; the first one answers greetings

    Returns:
        Reply text
    """
    if is_greeting(message):
        greetings = [g for g in greeting_messages or [] if g]
        return greetings[0] if greetings else DEFAULT_GREETING

    if not knowledge_base:
        return NO_INFORMATION_RESPONSE

    matches = rank_pages(message, knowledge_base)
    if not matches:
        logger.debug("answer_no_match", query_words=len(query_words(message)))
        return NO_INFORMATION_RESPONSE

    words = query_words(message)
    logger.debug(
        "answer_matched",
        matched_pages=len(matches),
        top_score=matches[0].score,
    )
    return compose_answer(matches, words, qualifying_stems(words))
