"""Page fetching and exam date extraction."""

from ielts_bot.scrapers.base import parse_turkish_date
from ielts_bot.scrapers.exam_dates import ExamDateScraper, extract
from ielts_bot.scrapers.fetcher import FetchError, PageFetcher

__all__ = [
    "ExamDateScraper",
    "FetchError",
    "PageFetcher",
    "extract",
    "parse_turkish_date",
]
