"""Economic news preprocessor for the dashboard news panel.

Cleans the raw /news records of the quote service into a DataFrame:
    - title: headline, whitespace-normalized
    - source: publisher name
    - url: article link (None when missing or "#")
    - published_at: UTC timestamp (NaT when unparseable)
    - description: plain text, HTML stripped
    - image_url: thumbnail link or None

Records are deduplicated by URL (falling back to title) and sorted newest
first.
"""

from pathlib import Path
from typing import Any

import pandas as pd
from bs4 import BeautifulSoup

from src.ingestion.preprocessors.base_preprocessor import BasePreprocessor
from src.shared.config import Config

OUTPUT_COLUMNS = ["title", "source", "url", "published_at", "description", "image_url"]


class NewsPreprocessor(BasePreprocessor):
    """Turns raw news records into a clean, ordered DataFrame."""

    CATEGORY = "news"

    # Backend field name -> output column (first match wins)
    _FIELD_ALIASES: dict[str, tuple[str, ...]] = {
        "title": ("title",),
        "source": ("source",),
        "url": ("url", "link"),
        "published_at": ("publishedAt", "published_at", "pubDate"),
        "description": ("description", "summary"),
        "image_url": ("imageUrl", "image_url", "thumbnail"),
    }

    def __init__(self, log_file: Path | None = None) -> None:
        super().__init__(
            log_file=log_file or Config.LOGS_DIR / "preprocessors" / "news_preprocessor.log",
        )

    def preprocess(self, payload: Any, **kwargs: Any) -> pd.DataFrame:
        """Clean raw news records.

        Args:
            payload: List of news dicts as returned by QuoteServiceCollector.collect_news().

        Returns:
            DataFrame with OUTPUT_COLUMNS, newest first.

        Raises:
            ValueError: If the payload is not a list of records.
        """
        records = self.validate(payload)
        cleaned = [self._clean_record(record) for record in records]
        cleaned = [record for record in cleaned if record["title"]]

        if not cleaned:
            self.logger.warning("No usable news records")
            return pd.DataFrame(columns=OUTPUT_COLUMNS)

        df = pd.DataFrame(cleaned, columns=OUTPUT_COLUMNS)
        df["published_at"] = pd.to_datetime(
            df["published_at"], errors="coerce", utc=True, format="mixed"
        )

        dedup_key = df["url"].fillna(df["title"])
        df = df[~dedup_key.duplicated(keep="first")]
        df = df.sort_values("published_at", ascending=False, na_position="last")
        df = df.reset_index(drop=True)

        self.logger.info("Processed %d news records", len(df))
        return df

    def validate(self, payload: Any) -> list[dict[str, Any]]:
        """Check that the payload is a list of record dicts."""
        if not isinstance(payload, list):
            raise ValueError(f"News payload must be a list, got {type(payload).__name__}")
        return [record for record in payload if isinstance(record, dict)]

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _clean_record(self, record: dict[str, Any]) -> dict[str, Any]:
        out = {column: self._pick(record, column) for column in OUTPUT_COLUMNS}
        out["title"] = self.clean_text(out["title"])
        out["source"] = self.clean_text(out["source"]) or None
        out["description"] = self.strip_html(out["description"])
        if not out["url"] or out["url"] == "#":
            out["url"] = None
        out["image_url"] = out["image_url"] or None
        return out

    def _pick(self, record: dict[str, Any], column: str) -> Any:
        for field in self._FIELD_ALIASES[column]:
            value = record.get(field)
            if value not in (None, ""):
                return value
        return None

    @staticmethod
    def clean_text(text: Any) -> str:
        """Normalize whitespace and drop common artifacts."""
        if not text:
            return ""
        text = str(text).replace("\xa0", " ").replace("\u200b", "")
        return " ".join(text.split())

    @classmethod
    def strip_html(cls, html: Any) -> str:
        """Plain text of an HTML fragment."""
        if not html:
            return ""
        text = BeautifulSoup(str(html), "html.parser").get_text(separator=" ")
        return cls.clean_text(text)
