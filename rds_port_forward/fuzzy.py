import difflib

DEFAULT_CUTOFF = 0.7


def similarity(query: str, candidate: str) -> float:
    """Case-insensitive similarity between 0 and 1.

    The score is the better of the whole-string ratio and the best ratio
    against any slice of ``candidate`` as long as ``query``, so that a short
    query scores high against a longer name that contains it.
    """
    query, candidate = query.lower(), candidate.lower()
    if not query or not candidate:
        return 0.0
    score = difflib.SequenceMatcher(None, query, candidate).ratio()
    width = len(query)
    for start in range(len(candidate) - width + 1):
        window = candidate[start : start + width]
        score = max(score, difflib.SequenceMatcher(None, query, window).ratio())
        if score == 1.0:
            break
    return score


def rank(query, candidates):
    """All candidates, most similar first. Ties keep their original order."""
    scored = [(similarity(query, c), c) for c in candidates]
    return [c for _, c in sorted(scored, key=lambda pair: -pair[0])]


def search(query, candidates, cutoff=DEFAULT_CUTOFF):
    """Candidates scoring at least ``cutoff``, most similar first."""
    scored = [(similarity(query, c), c) for c in candidates]
    matches = [pair for pair in scored if pair[0] >= cutoff]
    return [c for _, c in sorted(matches, key=lambda pair: -pair[0])]
