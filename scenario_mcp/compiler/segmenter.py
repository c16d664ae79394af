from __future__ import annotations

from collections.abc import Iterator

from nltk.tokenize.punkt import PunktSentenceTokenizer

# Default Punkt parameters split on sentence punctuation without any
# downloaded model, which keeps compilation offline.
_tokenizer = PunktSentenceTokenizer()


class Sentences:
    """Lazy view over the sentences of a description. Iterating again restarts."""

    def __init__(self, text: str) -> None:
        self.text = text

    def __iter__(self) -> Iterator[str]:
        if not self.text.strip():
            return
        for start, end in _tokenizer.span_tokenize(self.text):
            sentence = self.text[start:end].strip()
            if sentence:
                yield sentence


def segment(description: object) -> Sentences:
    if not isinstance(description, str):
        return Sentences("")
    return Sentences(description)
