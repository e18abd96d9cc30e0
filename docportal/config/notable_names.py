"""Default catalog of notable names tracked by the mention extractor.

The catalog is plain data.  It is injected into
:class:`~docportal.services.ingestion.mention_extractor.MentionExtractor`
at construction time; deployments that need a different list point
``NOTABLE_NAMES_PATH`` at a YAML or text file instead of editing this
module (see :func:`docportal.config.loader.load_notable_names`).

Place names are included deliberately: mention tracking is about where
a name shows up in the corpus, and locations are searched the same way.
"""

DEFAULT_NOTABLE_NAMES: tuple[str, ...] = (
    "Bill Gates",
    "Donald Trump",
    "Bill Clinton",
    "Hillary Clinton",
    "Prince Andrew",
    "Alan Dershowitz",
    "Ghislaine Maxwell",
    "Les Wexner",
    "Stephen Hawking",
    "Elon Musk",
    "Kevin Spacey",
    "Chris Tucker",
    "Naomi Campbell",
    "Jean-Luc Brunel",
    "Ehud Barak",
    "Larry Summers",
    "Leon Black",
    "Marvin Minsky",
    "Reid Hoffman",
    "George Mitchell",
    "Glenn Dubin",
    "Eva Dubin",
    "Sarah Kellen",
    "Nadia Marcinkova",
    "Virginia Giuffre",
    "Virginia Roberts",
    "Jeffrey Epstein",
    "Palm Beach",
    "Little St. James",
    "Zorro Ranch",
)
