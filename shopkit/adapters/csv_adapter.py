from pathlib import Path
from typing import List, Sequence

from ..scanner import decode_document, parse_text, render_csv


class CsvAdapter:
    """CSV adapter for product import/export files.

    Handles:
    - UTF-8 with or without BOM, plus legacy encodings via chardet
    - Quoted cells containing commas, quotes and line breaks
    - Writing exports with a BOM so spreadsheet tools pick UTF-8
    """

    def can_handle(self, file_path: str) -> bool:
        """Check if this adapter can handle the given file."""
        return Path(file_path).suffix.lower() == ".csv"

    def read(self, file_path: str) -> List[List[str]]:
        """Read a CSV file into rows of cells, header row included.

        Args:
            file_path: Path to the CSV file

        Returns:
            List of rows, each a list of string cells

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If the file cannot be decoded
        """
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        if path.stat().st_size == 0:
            return []

        return parse_text(decode_document(path.read_bytes()))

    def write(self, rows: Sequence[Sequence[object]], file_path: str) -> None:
        """Write rows (header included) as UTF-8 CSV with a BOM."""
        with open(file_path, "w", encoding="utf-8", newline="") as f:
            f.write(render_csv(rows, bom=True))
