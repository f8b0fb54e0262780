"""Lightweight suffix stemmer shared by indexing and querying."""

VOWELS = frozenset("aeiou")
MIN_STEM_LENGTH = 4


def stem_term(word: str) -> str:
    """Strip one common English suffix from ``word``.

    Words of three characters or fewer are returned unchanged. Rules are
    tried in a fixed order and only the first match is applied, e.g.
    ``stem_term("configuration")`` gives ``"configurat"`` and
    ``stem_term("libraries")`` gives ``"library"``.

    Args:
        word: Lowercase token

    Returns:
        The stemmed token
    """
    if len(word) < MIN_STEM_LENGTH:
        return word

    if word.endswith("ing"):
        return word[:-3]
    if word.endswith("tion"):
        return word[:-4] + "t"
    if word.endswith("sion"):
        return word[:-4] + "s"
    if word.endswith("ed") and word[-3] not in VOWELS:
        return word[:-2]
    if word.endswith("es") and word[-3] not in VOWELS:
        return word[:-2]
    if word.endswith("ly"):
        return word[:-2]
    if word.endswith("ment"):
        return word[:-4]
    if word.endswith("ness"):
        return word[:-4]
    if word.endswith("ies"):
        return word[:-3] + "y"
    if word.endswith("s") and word[-2] != "s":
        return word[:-1]
    return word
