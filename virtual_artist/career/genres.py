"""
Genre alias and family table used for release genre consistency.

Genres are normalized (lowercase, collapsed whitespace), then mapped
through GENRE_ALIASES to a canonical name, then looked up in GENRE_FAMILIES.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional


GENRE_ALIASES: Dict[str, str] = {
    "hip hop": "hip-hop",
    "hiphop": "hip-hop",
    "rnb": "r&b",
    "r and b": "r&b",
    "rhythm and blues": "r&b",
    "synthpop": "synth-pop",
    "synth pop": "synth-pop",
    "electro pop": "electropop",
    "kpop": "k-pop",
    "k pop": "k-pop",
    "jpop": "j-pop",
    "j pop": "j-pop",
    "dnb": "drum and bass",
    "d&b": "drum and bass",
    "drum & bass": "drum and bass",
    "edm": "electronic",
    "electronica": "electronic",
    "dreampop": "dream pop",
    "shoe gaze": "shoegaze",
    "lofi": "lo-fi",
    "lo fi": "lo-fi",
    "singer-songwriter": "singer/songwriter",
    "singer songwriter": "singer/songwriter",
    "neo soul": "neo-soul",
}

GENRE_FAMILIES: Dict[str, List[str]] = {
    "electronic": ["electronic", "techno", "house", "ambient", "synthwave", "trance", "dubstep", "drum and bass"],
    "rock": ["rock", "metal", "punk", "alternative", "grunge", "hard rock", "post-rock"],
    "indie": ["indie", "indie rock", "indie pop", "dream pop", "shoegaze", "lo-fi", "bedroom pop"],
    "pop": ["pop", "synth-pop", "electropop", "dance pop", "k-pop", "j-pop"],
    "jazz": ["jazz", "fusion", "smooth jazz", "bebop"],
    "classical": ["classical", "orchestral", "baroque", "romantic"],
    "hip_hop": ["hip-hop", "rap", "trap", "drill", "grime"],
    "soul": ["r&b", "soul", "funk", "neo-soul"],
    "folk": ["folk", "country", "bluegrass", "americana", "singer/songwriter"],
}

_FAMILY_BY_GENRE: Dict[str, str] = {
    genre: family
    for family, genres in GENRE_FAMILIES.items()
    for genre in genres
}


def normalize_genre(genre: str) -> str:
    """Lowercase and collapse whitespace."""
    return re.sub(r"\s+", " ", genre.strip().lower())


def canonical_genre(genre: str) -> str:
    """Normalize and resolve aliases."""
    normalized = normalize_genre(genre)
    return GENRE_ALIASES.get(normalized, normalized)


def genre_family(genre: str) -> Optional[str]:
    """Return the family a genre belongs to, or None if unmapped."""
    return _FAMILY_BY_GENRE.get(canonical_genre(genre))
