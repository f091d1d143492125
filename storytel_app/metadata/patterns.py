"""
Ordered title-marker rules.

Storytel titles carry locale-specific "<label> <number>:" episode/part/volume
prefixes (e.g. "Serie, Deel 3: Titel") and edition noise suffixes
("(Ungekürzt)", ", Teil 4"). Each rule strips its first match from the title.
Rules run in table order; the order matters because the generic
"word + number:" fallbacks would otherwise swallow the locale-specific ones.
"""

import re
from typing import NamedTuple, Pattern, Tuple


class TitlePattern(NamedTuple):
    label: str
    pattern: Pattern[str]
    replacement: str = ''


def _marker(label: str) -> Pattern[str]:
    # "<anything>, <label> <number>:" at the start of the title
    return re.compile(r'^.*?,\s*' + label + r'\s*\d+:\s*', re.IGNORECASE)


TITLE_PATTERNS: Tuple[TitlePattern, ...] = (
    # Dutch
    TitlePattern('nl-aflevering', _marker('Aflevering')),
    TitlePattern('nl-deel', _marker('Deel')),
    # Portuguese
    TitlePattern('pt-episodio', _marker('Episódio')),
    TitlePattern('pt-parte', _marker('Parte')),
    # Bulgarian
    TitlePattern('bg-epizod', _marker('епизод')),
    TitlePattern('bg-tom', _marker('том')),
    TitlePattern('bg-chast', _marker('част')),
    # Spanish
    TitlePattern('es-episodio', _marker('Episodio')),
    TitlePattern('es-volumen', _marker('Volumen')),
    # Danish
    TitlePattern('da-afsnit', _marker('Afsnit')),
    TitlePattern('da-bind', _marker('Bind')),
    # Norwegian / Swedish
    TitlePattern('no-del', _marker('Del')),
    # Arabic
    TitlePattern('ar-halqa', _marker('حلقة')),
    TitlePattern('ar-mujallad', _marker('مجلد')),
    TitlePattern('ar-juz', _marker('جزء')),
    # Finnish
    TitlePattern('fi-jakso', _marker('Jakso')),
    TitlePattern('fi-volyymi', _marker('Volyymi')),
    TitlePattern('fi-osa', _marker('Osa')),
    # French
    TitlePattern('fr-episode', _marker('Épisode')),
    TitlePattern('fr-tome', _marker('Tome')),
    TitlePattern('fr-partie', _marker('Partie')),
    # English
    TitlePattern('en-episode', _marker('Episode')),
    # Indonesian
    TitlePattern('id-bagian', _marker('Bagian')),
    # Hebrew
    TitlePattern('he-perek', _marker('פרק')),
    TitlePattern('he-kerekh', _marker('כרך')),
    TitlePattern('he-helek', _marker('חלק')),
    # Hindi
    TitlePattern('hi-kadi', _marker('कड़ी')),
    TitlePattern('hi-khand', _marker('खण्ड')),
    TitlePattern('hi-bhag', _marker('भाग')),
    # Icelandic
    TitlePattern('is-thattur', _marker('Þáttur')),
    TitlePattern('is-bindi', _marker('Bindi')),
    TitlePattern('is-hluti', _marker('Hluti')),
    # Polish
    TitlePattern('pl-odcinek', _marker('Odcinek')),
    TitlePattern('pl-tom', _marker('Tom')),
    TitlePattern('pl-czesc', _marker('Część')),
    # Swedish
    TitlePattern('sv-avsnitt', _marker('Avsnitt')),
    # German
    TitlePattern('de-folge', _marker('Folge')),
    TitlePattern('de-band', _marker('Band')),
    # Generic "Title - 3: ..." and "Title 3: ..."
    TitlePattern('dash-number', re.compile(r'^.*?\s+-\s+\d+:\s*', re.IGNORECASE)),
    TitlePattern('word-number', re.compile(r'^.*?\s+\d+:\s*', re.IGNORECASE)),
    TitlePattern('de-teil', _marker('Teil')),
    TitlePattern('en-volume', _marker('Volume')),
    # Edition and series noise at the end of the title
    TitlePattern('de-unabridged', re.compile(r'\s*\((Ungekürzt|Gekürzt)\)\s*$', re.IGNORECASE)),
    TitlePattern('en-unabridged', re.compile(r'\s*\((Unabridged|Abridged)\)\s*$', re.IGNORECASE)),
    TitlePattern('de-teil-suffix', re.compile(r',\s*Teil\s+\d+$', re.IGNORECASE)),
    TitlePattern('series-suffix', re.compile(r'-\s*.*?(?:Reihe|Serie)\s+\d+$', re.IGNORECASE)),
)


def apply_title_patterns(title: str, patterns: Tuple[TitlePattern, ...] = TITLE_PATTERNS) -> str:
    """Run every rule once, in order, removing its first match."""
    for rule in patterns:
        title = rule.pattern.sub(rule.replacement, title, count=1)
    return title
