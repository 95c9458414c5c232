"""
Line Classifier

Stateless heuristics that label one trimmed line of spine text as a likely
title, author or publisher line.

Author and publisher checks must run before the title-continuation checks:
most multi-word names also pass as short title lines.
"""

from typing import Sequence


# Words that rarely appear in a person's name but often start or end a title
FUNCTION_WORDS = frozenset({
    'the', 'a', 'an', 'of', 'in', 'on', 'at', 'for', 'with', 'from', 'to'
})

PUBLISHER_KEYWORDS = (
    'press', 'publishing', 'books', 'publishers', 'inc', 'llc', 'ltd', 'company', 'house'
)

# Title lines ending in one of these continue on the next line
DANGLING_WORDS = frozenset({'of', 'the', 'a', 'an'})

MULTI_AUTHOR_INDICATORS = (' and ', ' & ', ', ')


def uppercase_ratio(text: str) -> float:
    """Share of letters that are uppercase; 0.0 when there are no letters."""
    letters = [c for c in text if c.isalpha()]
    if not letters:
        return 0.0
    return sum(1 for c in letters if c.isupper()) / len(letters)


class LineClassifier:
    """
    Heuristic predicates over a single line of spine text.

    Usage:
        classifier = LineClassifier()
        classifier.is_publisher_line("RANDOM HOUSE")      # True
        classifier.is_likely_author_name("Jon Meacham")   # True
    """

    SHORT_LINE = 30
    TITLE_TEXT_MIN_LENGTH = 15
    TITLE_UPPERCASE_RATIO = 0.7
    NEW_TITLE_MIN_LENGTH = 20
    PUBLISHER_ACRONYM_LENGTH = 10

    def is_publisher_line(self, line: str) -> bool:
        """
        Publisher keyword anywhere in the line, or a short single uppercase
        word such as "NORTON".

        Keywords match inside words too ("Vincent" contains "inc"), and the
        second rule also matches short all-caps single-word titles.
        """
        text = line.strip()
        if not text:
            return False

        lowered = text.lower()
        if any(keyword in lowered for keyword in PUBLISHER_KEYWORDS):
            return True

        return (
            len(text) < self.SHORT_LINE
            and ' ' not in text
            and any(c.isalpha() for c in text)
            and text == text.upper()
        )

    def contains_multi_author_indicator(self, line: str) -> bool:
        lowered = line.lower()
        return any(indicator in lowered for indicator in MULTI_AUTHOR_INDICATORS)

    def is_likely_author_name(self, line: str) -> bool:
        """
        Capitalized line with a comma ("Clinton, Hillary"), or 2-4 words with
        no function word and at most one lowercase-initial word.
        """
        text = line.strip()
        if not text or not text[0].isupper():
            return False

        if ',' in text:
            return True

        words = text.split()
        if not 2 <= len(words) <= 4:
            return False

        if any(word.lower() in FUNCTION_WORDS for word in words):
            return False

        capitalized = sum(1 for word in words if word[0].isupper())
        return capitalized >= len(words) - 1

    def is_likely_title_text(self, line: str) -> bool:
        """Weak prior: long-ish text with a space. Use last."""
        text = line.strip()
        return len(text) > self.TITLE_TEXT_MIN_LENGTH and ' ' in text

    def is_author_line(self, line: str) -> bool:
        return self.is_likely_author_name(line) or self.contains_multi_author_indicator(line)

    def ends_with_dangling_word(self, line: str) -> bool:
        """True if the line ends with an article or "of" ("... ANTHOLOGY OF")."""
        words = line.strip().lower().split()
        return len(words) > 1 and words[-1] in DANGLING_WORDS

    def starts_with_function_word(self, line: str) -> bool:
        words = line.strip().lower().split()
        return bool(words) and words[0] in FUNCTION_WORDS

    def is_title_continuation(self, line: str, previous_title_lines: Sequence[str]) -> bool:
        """
        Whether `line` continues the title collected so far.

        Lines that look like authors or publishers never continue a title.
        """
        text = line.strip()
        if len(text) <= 1:
            return False

        if self.is_publisher_line(text) or self.is_author_line(text):
            return False

        if uppercase_ratio(text) >= self.TITLE_UPPERCASE_RATIO:
            return True

        if len(text) < self.SHORT_LINE and ',' not in text and ' by ' not in text.lower():
            return True

        if self.starts_with_function_word(text):
            return True

        return bool(previous_title_lines) and self.ends_with_dangling_word(previous_title_lines[-1])

    def is_author_continuation(self, line: str) -> bool:
        """Whether `line` extends an author block that has already started."""
        text = line.strip()
        if not text:
            return False

        if self.is_publisher_line(text):
            return False

        if self.is_likely_title_text(text) and len(text) > self.NEW_TITLE_MIN_LENGTH:
            return False

        if self.contains_multi_author_indicator(text) or self.is_likely_author_name(text):
            return True

        return len(text) < self.SHORT_LINE and text[0].isupper()

    def is_publisher_continuation(self, line: str) -> bool:
        """Whether `line` extends a publisher block ("PENGUIN" + "BOOKS")."""
        text = line.strip()
        if not text:
            return False

        if self.is_publisher_line(text):
            return True

        if len(text) < self.PUBLISHER_ACRONYM_LENGTH and text == text.upper():
            return True

        return len(text) < self.SHORT_LINE and ',' not in text
