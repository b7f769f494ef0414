"""
Exam date extractor for the Bilkent IELTS page.

The page lists upcoming sessions in a table, one line per session:

    -- 12 Ocak 2025, Pazar - ... Son Başvuru ve Belge YüklemeTarihi: 20 Aralık 2024, Cuma

Two strategies locate that line:
- targeted: the first cell of the known row (``tr.row-2.even td.column-1``)
- fallback: every table row of the page, first match wins
"""

import logging
import re
from typing import Optional

from bs4 import Tag

from ielts_bot.models import ScrapedSnapshot
from ielts_bot.scrapers.base import BaseScraper

logger = logging.getLogger(__name__)

_WORD = r"[A-Za-zçğıöşüÇĞİÖŞÜ]+"
DATE_PATTERN = rf"\d{{1,2}}\s+{_WORD}\s+\d{{4}},\s+{_WORD}"

SEPARATOR_MARKER = "--"
DEADLINE_MARKER = "Son Başvuru"
SEGMENT_DELIMITER = " - "

DATE_RE = re.compile(DATE_PATTERN)
DEADLINE_RE = re.compile(rf"Son Başvuru ve Belge Yükleme\s*Tarihi:\s*({DATE_PATTERN})")
EXAM_DATE_RE = re.compile(rf"--\s*({DATE_PATTERN})")

TARGET_ROW_SELECTOR = "tr.row-2.even"
TARGET_CELL_SELECTOR = "td.column-1"


def _is_candidate_line(line: str) -> bool:
    return (
        SEPARATOR_MARKER in line
        and DEADLINE_MARKER in line
        and DATE_RE.search(line) is not None
        and DEADLINE_RE.search(line) is not None
    )


def extract(raw_text: str) -> Optional[ScrapedSnapshot]:
    """
    Pull the exam date and application deadline out of page text.

    Args:
        raw_text: Text of a table cell, a row or a whole page

    Returns:
        ScrapedSnapshot, or None when no line carries both dates
    """
    if not raw_text:
        return None

    target_line = next(
        (line for line in raw_text.splitlines() if _is_candidate_line(line)),
        None,
    )
    if target_line is None:
        return None

    parts = target_line.split(SEGMENT_DELIMITER)
    if len(parts) < 2:
        logger.debug(f"Could not split target line by '{SEGMENT_DELIMITER}': {target_line}")
        return None

    exam_match = EXAM_DATE_RE.search(parts[0])
    deadline_match = DEADLINE_RE.search(SEGMENT_DELIMITER.join(parts[1:]))

    if not exam_match or not deadline_match:
        logger.debug(f"Could not extract dates from line: {target_line}")
        return None

    return ScrapedSnapshot(
        exam_date=exam_match.group(1).strip(),
        application_deadline=deadline_match.group(1).strip(),
        raw_text=raw_text.strip(),
    )


class ExamDateScraper(BaseScraper):
    """
    Extracts the next exam date from the IELTS page HTML.

    Tries the targeted strategy first and scans all tables only when
    the known row is missing or no longer matches.
    """

    def scrape(self, html: str) -> Optional[ScrapedSnapshot]:
        """
        Run the targeted strategy, then the fallback strategy.

        Args:
            html: Page HTML

        Returns:
            ScrapedSnapshot or None if neither strategy matched
        """
        snapshot = self.extract_targeted(html)
        if snapshot is None:
            logger.warning("Targeted extraction failed, trying fallback scan...")
            snapshot = self.extract_fallback(html)
        return snapshot

    def extract_targeted(self, html: str) -> Optional[ScrapedSnapshot]:
        """Look only at the first column of the known exam row."""
        soup = self.make_soup(html)

        row = soup.select_one(TARGET_ROW_SELECTOR)
        if row is None:
            logger.warning(f"Could not find exam date row with selector: {TARGET_ROW_SELECTOR}")
            return None

        cell = row.select_one(TARGET_CELL_SELECTOR)
        if cell is None:
            logger.warning(f"Exam date row has no cell matching: {TARGET_CELL_SELECTOR}")
            return None

        raw_text = self._element_text(cell)
        logger.debug(f"Raw text from first column: {raw_text}")

        snapshot = extract(raw_text)
        if snapshot is None:
            logger.warning(f"Could not find target line with dates: {raw_text[:200]}")
            return None

        logger.info(f"Extracted exam date: {snapshot.exam_date}")
        logger.info(f"Extracted application deadline: {snapshot.application_deadline}")
        return snapshot

    def extract_fallback(self, html: str) -> Optional[ScrapedSnapshot]:
        """Scan every row of every table and accept the first match."""
        soup = self.make_soup(html)

        for table in soup.find_all("table"):
            for row in table.find_all("tr"):
                snapshot = extract(self._row_text(row))
                if snapshot is not None:
                    logger.info(f"Fallback scan found exam date: {snapshot.exam_date}")
                    logger.info(
                        f"Fallback scan found deadline: {snapshot.application_deadline}"
                    )
                    return snapshot

        logger.warning("Fallback scan found no exam date row")
        return None

    def _element_text(self, element: Tag) -> str:
        """Text of an element with <br> tags turned into line breaks."""
        for br in element.find_all("br"):
            br.replace_with("\n")
        return self.clean_text(element.get_text())

    def _row_text(self, row: Tag) -> str:
        """Text of a table row, one line per cell."""
        cells = row.find_all(["td", "th"], recursive=False)
        if not cells:
            return self._element_text(row)
        return "\n".join(self._element_text(cell) for cell in cells)
