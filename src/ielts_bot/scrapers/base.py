"""
Base scraper class with shared utilities.

Provides HTML parsing, text cleanup and Turkish date parsing for scrapers.
"""

import logging
import re
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Optional

from bs4 import BeautifulSoup
from dateutil import parser as date_parser

logger = logging.getLogger(__name__)


class TurkishParserInfo(date_parser.parserinfo):
    """dateutil parser vocabulary for Turkish month and weekday names."""

    MONTHS = [
        ("Oca", "Ocak"),
        ("Şub", "Şubat"),
        ("Mar", "Mart"),
        ("Nis", "Nisan"),
        ("May", "Mayıs"),
        ("Haz", "Haziran"),
        ("Tem", "Temmuz"),
        ("Ağu", "Ağustos"),
        ("Eyl", "Eylül"),
        ("Eki", "Ekim"),
        ("Kas", "Kasım"),
        ("Ara", "Aralık"),
    ]

    WEEKDAYS = [
        ("Pzt", "Pazartesi"),
        ("Sal", "Salı"),
        ("Çar", "Çarşamba"),
        ("Per", "Perşembe"),
        ("Cum", "Cuma"),
        ("Cmt", "Cumartesi"),
        ("Paz", "Pazar"),
    ]

    def __init__(self):
        super().__init__(dayfirst=True)


_PARSER_INFO = TurkishParserInfo()


def parse_turkish_date(date_str: Optional[str]) -> Optional[date]:
    """
    Parse a date written the way the IELTS page writes it.

    Args:
        date_str: e.g. "12 Ocak 2025, Pazar"

    Returns:
        date or None if parsing fails
    """
    if not date_str:
        return None

    date_str = re.sub(r'\s+', ' ', date_str.strip())

    try:
        return date_parser.parse(date_str, parserinfo=_PARSER_INFO, fuzzy=True).date()
    except (ValueError, TypeError, OverflowError) as e:
        logger.debug(f"Could not parse date '{date_str}': {e}")
        return None


class BaseScraper(ABC):
    """
    Base class for page scrapers.

    Scrapers work on already fetched HTML so they stay free of I/O.
    """

    @abstractmethod
    def scrape(self, html: str) -> Any:
        """Scrape data - implemented by subclasses."""
        pass

    @staticmethod
    def make_soup(html: str) -> BeautifulSoup:
        return BeautifulSoup(html or "", "lxml")

    @staticmethod
    def clean_text(text: Optional[str]) -> str:
        """
        Normalize whitespace inside each line and drop empty lines.

        Line breaks are kept because the extractor matches line by line.

        Args:
            text: Text to clean

        Returns:
            str: Cleaned text
        """
        if not text:
            return ""

        lines = (re.sub(r'[ \t\r\f\v\xa0]+', ' ', line).strip() for line in text.split("\n"))
        return "\n".join(line for line in lines if line)
