import logging
from pathlib import Path
from typing import Any, List, Optional

import pandas as pd
from pydantic import ValidationError

from microlearn.errors import ChunkImportError
from microlearn.schemas import ChunkCreate

logger = logging.getLogger(__name__)

LIST_SEPARATOR = ";"


class ChunkImporter:
    """
    Parse chunk tables exported by the content pipeline.

    Expected columns (case-insensitive): id, title, concept, difficulty,
    estimated_minutes, prerequisites, next_chunks, topic, subtopic, tags.
    List columns hold ";"-separated values. Row order is generation order.
    """

    @staticmethod
    def parse_csv_table(file_path: str, topic: Optional[str] = None) -> List[ChunkCreate]:
        """Parse CSV format chunk table."""
        df = pd.read_csv(file_path, dtype=str)
        return ChunkImporter.parse_frame(df, topic)

    @staticmethod
    def parse_excel_table(file_path: str, topic: Optional[str] = None) -> List[ChunkCreate]:
        """Parse Excel format chunk table."""
        df = pd.read_excel(file_path, dtype=str)
        return ChunkImporter.parse_frame(df, topic)

    @staticmethod
    def parse_frame(df: pd.DataFrame, topic: Optional[str] = None) -> List[ChunkCreate]:
        """
        Convert a chunk table to drafts.

        Args:
            df: One row per chunk
            topic: Fallback topic for rows without one

        Raises:
            ChunkImportError: if a row with an id and title is still invalid
        """
        # Normalize column names
        df.columns = df.columns.str.strip().str.lower()

        chunks = []
        for row_number, (_, row) in enumerate(df.iterrows(), start=2):  # header is row 1
            chunk_id = ChunkImporter._clean(row.get("id"))
            title = ChunkImporter._clean(row.get("title"))

            # Skip rows with missing essential data
            if not chunk_id or not title:
                logger.warning(f"Skipping row {row_number}: missing id or title")
                continue

            item = {
                "id": chunk_id,
                "title": title,
                "concept": ChunkImporter._clean(row.get("concept")) or title,
                "topic": ChunkImporter._clean(row.get("topic")) or topic,
                "subtopic": ChunkImporter._clean(row.get("subtopic")),
                "prerequisites": ChunkImporter._split(row.get("prerequisites")),
                "next_chunks": ChunkImporter._split(row.get("next_chunks")),
                "tags": ChunkImporter._split(row.get("tags")),
            }
            difficulty = ChunkImporter._clean(row.get("difficulty"))
            if difficulty:
                item["difficulty"] = difficulty.lower()
            minutes = ChunkImporter._clean(row.get("estimated_minutes"))
            if minutes:
                item["estimated_minutes"] = minutes

            try:
                chunks.append(ChunkCreate(**item))
            except ValidationError as e:
                raise ChunkImportError(
                    f"Invalid chunk on row {row_number}: {e.errors()[0]['msg']}",
                    details={"row": row_number, "id": chunk_id},
                ) from e

        return chunks

    @staticmethod
    def _clean(value: Any) -> Optional[str]:
        if value is None or pd.isna(value):
            return None
        text = str(value).strip()
        if not text or text.lower() == "nan":
            return None
        return text

    @staticmethod
    def _split(value: Any) -> List[str]:
        text = ChunkImporter._clean(value)
        if not text:
            return []
        return [part.strip() for part in text.split(LIST_SEPARATOR) if part.strip()]

    @staticmethod
    def auto_parse(file_path: str, topic: Optional[str] = None) -> List[ChunkCreate]:
        """
        Automatically detect file type and parse accordingly.
        Supports: CSV, Excel (xlsx, xls)
        """
        file_ext = Path(file_path).suffix.lower()

        if file_ext == ".csv":
            return ChunkImporter.parse_csv_table(file_path, topic)
        elif file_ext in [".xlsx", ".xls"]:
            return ChunkImporter.parse_excel_table(file_path, topic)
        else:
            raise ChunkImportError(f"Unsupported file format: {file_ext}. Use .csv or .xlsx")
