"""Splicing injected-language tokens into the tokens of the enclosing language."""

from typing import Iterable, List

from .tokens import Injection, Token


def clip_token(token: Token, injection: Injection) -> List[Token]:
    """
    Remove the part of ``token`` that falls inside the injection range.

    Returns:
        No fragment if the token lies inside the injection, the token itself
        if they do not overlap, otherwise the fragment before and/or after
        the injection
    """
    region = injection.range
    if region.covers(token.range):
        return []
    if not token.range.intersects(region):
        return [token]

    fragments: List[Token] = []
    before = token.range.before(region)
    if before is not None:
        fragments.append(token.with_range(before))
    after = token.range.after(region)
    if after is not None:
        fragments.append(token.with_range(after))
    return fragments


def merge_injections(tokens: Iterable[Token], injections: Iterable[Injection]) -> List[Token]:
    """
    Combine parent tokens with the tokens of the injections found in the same text.

    The injected grammar owns its whole range: parent tokens inside it are
    dropped and parent tokens crossing its bounds are clipped. Injections
    that produced no tokens leave the parent tokens untouched. The result
    holds the surviving parent fragments followed by the injection tokens in
    discovery order; it is not sorted.
    """
    injections = list(injections)
    merged = list(tokens)
    for injection in injections:
        if not injection.tokens:
            continue
        clipped: List[Token] = []
        for token in merged:
            clipped.extend(clip_token(token, injection))
        merged = clipped

    for injection in injections:
        merged.extend(injection.tokens)
    return merged
