import logging
from typing import Dict, List, Optional

from pydantic import BaseModel

from sheet_processor import EXPECTED_HEADERS, CellValue, RowData, filter_rows

logger = logging.getLogger(__name__)


class ViewerSnapshot(BaseModel):
    """
    Serialisable view of the viewer state.

    Attributes:
        headers: Table headers, always EXPECTED_HEADERS
        rows: Visible rows keyed by column name
        total_rows: Number of rows loaded from the file
        visible_rows: Number of rows left after filtering
        search_term: Current Cod.SEC search text
        file_name: Name of the loaded file, if any
        error: Error message of the last failed upload, if any
        is_loading: Whether an upload is being read
    """
    headers: List[str]
    rows: List[Dict[str, CellValue]]
    total_rows: int
    visible_rows: int
    search_term: str
    file_name: Optional[str] = None
    error: Optional[str] = None
    is_loading: bool = False


class ViewerState:
    """State of the data viewer page. Filtered rows follow rows and search term."""

    def __init__(self):
        self.rows: List[RowData] = []
        self.filtered_rows: List[RowData] = []
        self.search_term: str = ""
        self.error: Optional[str] = None
        self.file_name: Optional[str] = None
        self.is_loading: bool = False

    def _refilter(self):
        self.filtered_rows = filter_rows(self.rows, self.search_term)

    def begin_upload(self, file_name: Optional[str]):
        logger.info(f"Reading upload: {file_name}")
        self.is_loading = True
        self.error = None
        self.file_name = file_name
        self.rows = []
        self._refilter()

    def load_rows(self, rows: List[RowData]):
        self.rows = list(rows)
        self.is_loading = False
        self._refilter()
        logger.info(f"Showing {len(self.filtered_rows)} of {len(self.rows)} rows from {self.file_name}")

    def fail(self, message: str):
        """Record an upload error and fall back to the no-file state."""
        logger.warning(f"Upload of {self.file_name} failed: {message}")
        self.error = message
        self.is_loading = False
        self.file_name = None
        self.rows = []
        self._refilter()

    def set_search_term(self, search_term: Optional[str]):
        self.search_term = search_term or ""
        self._refilter()

    def clear(self):
        self.rows = []
        self.filtered_rows = []
        self.search_term = ""
        self.file_name = None
        self.error = None
        logger.info("Viewer cleared")

    @property
    def has_data(self) -> bool:
        return len(self.rows) > 0

    def snapshot(self) -> ViewerSnapshot:
        return ViewerSnapshot(
            headers=list(EXPECTED_HEADERS),
            rows=[row.as_record() for row in self.filtered_rows],
            total_rows=len(self.rows),
            visible_rows=len(self.filtered_rows),
            search_term=self.search_term,
            file_name=self.file_name,
            error=self.error,
            is_loading=self.is_loading
        )
