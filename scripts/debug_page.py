"""Debug - fetch the IELTS page and show what each extraction strategy finds."""

from ielts_bot.config import get_settings
from ielts_bot.scrapers import ExamDateScraper, PageFetcher
from ielts_bot.scrapers.exam_dates import TARGET_ROW_SELECTOR

settings = get_settings()
fetcher = PageFetcher(url=settings.target_url, timeout=settings.request_timeout)
scraper = ExamDateScraper()

print(f"Fetching {settings.target_url}...")
html = fetcher.fetch()
print(f"Got {len(html)} characters")

soup = scraper.make_soup(html)
tables = soup.find_all("table")
print(f"\nTables: {len(tables)}")
for i, table in enumerate(tables):
    rows = table.find_all("tr")
    print(f"  table {i}: id={table.get('id')}, class={table.get('class')}, rows={len(rows)}")
    for row in rows[:5]:
        text = scraper.clean_text(row.get_text()).replace("\n", " | ")
        print(f"    [{' '.join(row.get('class') or [])}] {text[:120]}")

print(f"\nTargeted ({TARGET_ROW_SELECTOR}):")
snapshot = scraper.extract_targeted(html)
print(f"  {snapshot.exam_date} / {snapshot.application_deadline}" if snapshot else "  not found")

print("\nFallback (all table rows):")
snapshot = scraper.extract_fallback(html)
print(f"  {snapshot.exam_date} / {snapshot.application_deadline}" if snapshot else "  not found")
