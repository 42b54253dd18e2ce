from __future__ import annotations

import logging

from ..models.config_models import RosterConfig
from ..models.dataset import cell_text
from ..store.workbook import Table

"""Header reconciler for the roster's derived header band.

Users replace the roster by pasting a full block (including its own header rows), which
clobbers the derived labels. Before any enrichment write the band is compared with the
configured labels and, on any difference, rewritten as a whole in one range write.
"""

__all__ = [
    "ensure_enrichment_headers",
    "write_enrichment_headers",
]

logger = logging.getLogger(__name__)


def write_enrichment_headers(table: Table, roster: RosterConfig) -> None:
    """Write the canonical label band and mark it bold."""
    row = roster.header_rows
    col = roster.band_start + 1
    table.set_values(row, col, [list(roster.band_labels)])
    table.set_bold(row, col, 1, len(roster.band_labels))


def ensure_enrichment_headers(table: Table, roster: RosterConfig) -> bool:
    """Restore the derived header band if any label differs. Returns True when restored."""
    current = table.get_values(roster.header_rows, roster.band_start + 1, 1, len(roster.band_labels))[0]
    mismatched = False
    for offset, (found, expected) in enumerate(zip(current, roster.band_labels, strict=True)):
        found_text = cell_text(found)
        if found_text != expected:
            mismatched = True
            logger.info(
                "header mismatch table=%s column=%d: expected %r, found %r",
                table.name,
                roster.band_start + offset + 1,
                expected,
                found_text,
            )

    if not mismatched:
        logger.debug("enrichment headers already present table=%s", table.name)
        return False

    write_enrichment_headers(table, roster)
    logger.info("restored enrichment headers table=%s row=%d", table.name, roster.header_rows)
    return True
