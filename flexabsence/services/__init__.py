from .comments import sync_comments
from .enrichment import enrich_roster
from .importer import import_reports
from .roster import create_todays_roster, find_roster

__all__ = [
    "create_todays_roster",
    "enrich_roster",
    "find_roster",
    "import_reports",
    "sync_comments",
]
