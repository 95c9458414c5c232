"""
Field Normalizer

Turns the raw lines of a closed title, author or publisher block into a
single field value.
"""

import re
from typing import Optional, Sequence

from shelfreader.extraction.line_classifier import uppercase_ratio


class FieldNormalizer:
    """
    Case normalization and multi-line field combination.

    Usage:
        normalizer = FieldNormalizer()
        normalizer.normalize_case("HIS TRUTH IS MARCHING ON")
        # "His Truth Is Marching On"
    """

    UPPERCASE_THRESHOLD = 0.8
    AUTHOR_JOINER = " AND "

    _word_pattern = re.compile(r'\S+')

    def normalize_case(self, text: str) -> str:
        """
        Title-case mostly-uppercase text; leave everything else alone.

        Idempotent: title-cased text is no longer mostly uppercase, and
        capitalizing a capitalized word changes nothing.
        """
        if uppercase_ratio(text) > self.UPPERCASE_THRESHOLD:
            return self._word_pattern.sub(lambda m: self._capitalize(m.group(0)), text)
        return text

    @staticmethod
    def _capitalize(word: str) -> str:
        # A few characters title-case into two ("ŉ" -> "ʼN"), so repeat
        # until the word is stable
        for _ in range(3):
            capitalized = word.capitalize()
            if capitalized == word:
                break
            word = capitalized
        return word

    def combine_title_lines(self, lines: Sequence[str]) -> str:
        return " ".join(line.strip() for line in lines if line.strip())

    def combine_author_lines(self, lines: Sequence[str]) -> str:
        """
        Join author lines.

        A single line is kept as-is, since it may already list several
        authors. Several lines keep their own separators if any line has
        " AND " or " & "; otherwise they are joined with " AND ".
        """
        cleaned = [line.strip() for line in lines if line.strip()]
        if not cleaned:
            return ""
        if len(cleaned) == 1:
            return cleaned[0]

        if any(" AND " in line.upper() or " & " in line for line in cleaned):
            return " ".join(cleaned)
        return self.AUTHOR_JOINER.join(cleaned)

    def combine_publisher_lines(self, lines: Sequence[str]) -> str:
        return " ".join(line.strip() for line in lines if line.strip())

    def title(self, lines: Sequence[str]) -> str:
        return self.normalize_case(self.combine_title_lines(lines))

    def author(self, lines: Sequence[str]) -> Optional[str]:
        combined = self.combine_author_lines(lines)
        return self.normalize_case(combined) if combined else None

    def publisher(self, lines: Sequence[str]) -> Optional[str]:
        combined = self.combine_publisher_lines(lines)
        return self.normalize_case(combined) if combined else None
