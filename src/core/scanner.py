"""Extraction of candidate image references from rendered markup."""

from __future__ import annotations

from typing import List

from bs4 import BeautifulSoup

from core.models import Candidate

CANDIDATE_SELECTOR = "img[src], a.lightbox[href]"
# Avatars and emoji are decorative; thumbnails inside a lightbox are covered by the link.
EXCLUDED_SELECTOR = "img.avatar, img.emoji, .lightbox img[src]"


def extract_candidates(markup: str) -> List[Candidate]:
    """Return image and lightbox candidates in document order."""

    if not markup:
        return []

    soup = BeautifulSoup(markup, "html.parser")
    excluded = {id(node) for node in soup.select(EXCLUDED_SELECTOR)}

    candidates: List[Candidate] = []
    for node in soup.select(CANDIDATE_SELECTOR):
        if id(node) in excluded:
            continue
        if node.name == "img":
            candidates.append(Candidate(src=node.get("src", ""), kind="img"))
        else:
            candidates.append(Candidate(src=node.get("href", ""), kind="lightbox"))
    return candidates
