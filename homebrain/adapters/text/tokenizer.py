"""
Deterministic Tokenizer

Turns command text into typed tokens using dictionaries and rules.
This is the front of the pipeline - reliable and predictable.

Advantages:
- Deterministic results (one input -> one output)
- Low latency
- No dependencies on ML models
- Multi-word country names become a single token ("united kingdom")

Limitations:
- Countries must be listed in the gazetteer
- Numbers are recognized only as digits or simple number words
"""

from __future__ import annotations

import re
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from homebrain.core.entities import Token, TokenType


# ============================================
# Gazetteers
# ============================================

COUNTRIES: FrozenSet[str] = frozenset({
    # Europe
    "austria", "belgium", "bulgaria", "croatia", "czechia", "denmark",
    "estonia", "finland", "france", "germany", "greece", "hungary",
    "iceland", "ireland", "italy", "latvia", "lithuania", "luxembourg",
    "moldova", "netherlands", "norway", "poland", "portugal", "romania",
    "serbia", "slovakia", "slovenia", "spain", "sweden", "switzerland",
    "ukraine", "united kingdom",

    # Americas
    "argentina", "brazil", "canada", "chile", "colombia", "mexico",
    "united states",

    # Asia & Pacific
    "australia", "hong kong", "india", "indonesia", "israel", "japan",
    "malaysia", "new zealand", "singapore", "south korea", "taiwan",
    "thailand", "turkey", "united arab emirates", "vietnam",

    # Africa
    "egypt", "kenya", "morocco", "nigeria", "south africa",
})

# Colloquial names mapped to gazetteer entries
COUNTRY_ALIASES: Dict[str, str] = {
    "uk": "united kingdom",
    "britain": "united kingdom",
    "great britain": "united kingdom",
    "england": "united kingdom",
    "usa": "united states",
    "america": "united states",
    "holland": "netherlands",
    "czech republic": "czechia",
    "korea": "south korea",
    "uae": "united arab emirates",
    "emirates": "united arab emirates",
    "swiss": "switzerland",
}

NUMBER_WORDS: Dict[str, int] = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14,
    "fifteen": 15, "sixteen": 16, "seventeen": 17, "eighteen": 18,
    "nineteen": 19, "twenty": 20, "thirty": 30, "forty": 40, "fifty": 50,
    "sixty": 60, "seventy": 70, "eighty": 80, "ninety": 90, "hundred": 100,
}

# Longest multi-word country name, in words
_MAX_PHRASE_WORDS = max(
    len(name.split()) for name in list(COUNTRIES) + list(COUNTRY_ALIASES)
)

_NUMBER = re.compile(r"^\d+(?:\.\d+)?%?$")


class DeterministicTokenizer:
    """
    Dictionary-based tokenizer.

    Example:
    ```
    tokenizer = DeterministicTokenizer()
    tokens = tokenizer.tokenize("VPN start France, Paris")
    # [Token(FREE_TEXT, "vpn", 0), Token(FREE_TEXT, "start", 1),
    #  Token(COUNTRY, "france", 2), Token(FREE_TEXT, "paris", 3)]
    ```
    """

    def __init__(
        self,
        countries: Optional[FrozenSet[str]] = None,
        aliases: Optional[Dict[str, str]] = None,
    ) -> None:
        self.countries = countries if countries is not None else COUNTRIES
        self.aliases = aliases if aliases is not None else COUNTRY_ALIASES

        # Preprocessors for text normalization
        self._preprocessors: List[Callable[[str], str]] = [
            self._lower,
            self._strip_punctuation,
            self._normalize_whitespace,
        ]

    def tokenize(self, text: str) -> List[Token]:
        """
        Splits text into typed tokens.

        Args:
            text: Command text (after ASR or typed)

        Returns:
            Tokens with contiguous positions starting at 0
        """
        words = self._preprocess(text).split()
        tokens: List[Token] = []

        i = 0
        while i < len(words):
            country, used = self._match_country(words, i)
            if country is not None:
                tokens.append(Token(TokenType.COUNTRY, country, len(tokens)))
                i += used
                continue

            word = words[i]
            number = self._parse_number(word)
            if number is not None:
                tokens.append(Token(TokenType.NUMBER, number, len(tokens)))
            else:
                tokens.append(Token(TokenType.FREE_TEXT, word, len(tokens)))
            i += 1

        return tokens

    def _match_country(self, words: List[str], start: int) -> Tuple[Optional[str], int]:
        """Greedy longest match of a country phrase at a position."""
        for size in range(min(_MAX_PHRASE_WORDS, len(words) - start), 0, -1):
            phrase = " ".join(words[start:start + size])
            if phrase in self.countries:
                return phrase, size
            if phrase in self.aliases:
                return self.aliases[phrase], size
        return None, 0

    def _parse_number(self, word: str) -> Optional[str]:
        if _NUMBER.match(word):
            return word.rstrip("%")
        if word in NUMBER_WORDS:
            return str(NUMBER_WORDS[word])
        return None

    def _preprocess(self, text: str) -> str:
        result = text.strip()
        for processor in self._preprocessors:
            result = processor(result)
        return result

    def _lower(self, text: str) -> str:
        return text.lower()

    def _strip_punctuation(self, text: str) -> str:
        """Removes ASR punctuation; hyphens and slashes separate words."""
        text = re.sub(r"[-/_]", " ", text)
        # Keep decimal points inside numbers
        text = re.sub(r"(?<!\d)\.|\.(?!\d)", " ", text)
        return re.sub(r"[^\w\s.%]", " ", text)

    def _normalize_whitespace(self, text: str) -> str:
        return " ".join(text.split())
