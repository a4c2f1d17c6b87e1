"""Interactive worktree picker using Textual."""

from typing import List, Optional, Set

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.coordinate import Coordinate
from textual.events import Click
from textual.widgets import DataTable, Footer, Header, Static
from rich.text import Text

from .__version__ import __version__
from .constants import COLUMNS, SYMBOL_CURRENT, SYMBOL_MARKED, SYMBOL_UNMARKED
from .formatters import entry_status, status_text
from .models.collection import WorktreeCollection
from .models.worktree import WorktreeEntry
from .services.refresh_service import StatusLoader
from .logging_config import get_logger

logger = get_logger(__name__)


class NonExpandingHeader(Header):
    """Header widget that doesn't expand/contract on click."""

    def on_click(self, event: Click) -> None:
        event.stop()


class WorktreePickerApp(App[Optional[List[WorktreeEntry]]]):
    """Pick one worktree (or several, in multi mode) from a live collection.

    Rows are added once in collection order. Status and assignee cells are
    rewritten in place whenever the collection signals an invalidation.
    The app returns the chosen entries, or None when cancelled.
    """

    TITLE = "Git Worktree Keeper"
    SUB_TITLE = f"v{__version__}"

    CSS = """
    Screen {
        background: $surface;
    }

    DataTable {
        height: 1fr;
    }

    #status-bar {
        dock: bottom;
        height: auto;
        background: $panel;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("q", "cancel", "Quit"),
        Binding("escape", "cancel", "Cancel", show=False),
        Binding("space", "toggle_mark", "Mark/Unmark"),
        Binding("enter", "select", "Select", show=False),
    ]

    def __init__(
        self,
        collection: WorktreeCollection,
        multi: bool = False,
        prompt: str = "Select worktree",
        loader: Optional[StatusLoader] = None,
    ):
        super().__init__()
        self.collection = collection
        self.multi = multi
        self.prompt = prompt
        self.loader = loader
        self.marked: Set[int] = set()
        self._listener = self._on_collection_invalidated

    def compose(self) -> ComposeResult:
        yield NonExpandingHeader(show_clock=False, icon="")
        yield DataTable(id="worktree-table", cursor_type="row", zebra_stripes=True)
        yield Static(id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        """Set up the table and start listening for status updates."""
        table = self.query_one(DataTable)

        if self.multi:
            table.add_column(Text(SYMBOL_UNMARKED, justify="center"), key="mark")
        for col in COLUMNS:
            if col.key == "path" and not self.collection.show_path:
                continue
            table.add_column(col.label, width=col.width or None, key=col.key)

        for index, entry in enumerate(self.collection.base):
            table.add_row(*self._row_cells(entry, index), key=str(index))

        self.collection.add_listener(self._listener)
        self._update_status()
        if self.loader is not None:
            self.wait_for_loader()

    def on_unmount(self) -> None:
        self.collection.remove_listener(self._listener)

    def _row_cells(self, entry: WorktreeEntry, index: int) -> list:
        cells = []
        if self.multi:
            symbol = SYMBOL_MARKED if index in self.marked else SYMBOL_UNMARKED
            cells.append(Text(symbol, justify="center"))

        branch = entry.display_branch + (SYMBOL_CURRENT if entry.is_current else "")
        cells.append(Text(branch, style="bold" if entry.is_primary else ""))
        cells.append(status_text(entry_status(entry)))
        cells.append(f"@{entry.assignees_display}" if entry.assignees else "")
        if self.collection.show_path:
            cells.append(entry.path)
        return cells

    def _on_collection_invalidated(self) -> None:
        """Invalidation listener; runs on a loader or timer thread."""
        try:
            self.call_from_thread(self.refresh_rows)
        except RuntimeError as e:
            # App already stopped; late results are dropped
            logger.debug(f"Picker not running, skipping redraw: {e}")

    def refresh_rows(self) -> None:
        """Rewrite the status and assignee cells of every row."""
        table = self.query_one(DataTable)
        for index, entry in enumerate(self.collection.base):
            key = str(index)
            table.update_cell(key, "status", status_text(entry_status(entry)))
            table.update_cell(key, "assignees", f"@{entry.assignees_display}" if entry.assignees else "")
        self._update_status()

    def _update_status(self) -> None:
        status = self.query_one("#status-bar", Static)
        loading = self.loader is not None and not self.loader.done
        parts = [self.prompt, f"{len(self.collection)} worktrees"]
        if self.multi:
            parts.append(f"Marked: {len(self.marked)}")
        if loading:
            parts.append("loading statuses...")
        status.update(" | ".join(parts))

    @work(exclusive=True, thread=True)
    def wait_for_loader(self) -> None:
        """Refresh the status bar once every status has been resolved."""
        assert self.loader is not None
        self.loader.wait()
        try:
            self.call_from_thread(self._update_status)
        except RuntimeError:
            pass

    def action_toggle_mark(self) -> None:
        """Toggle the mark on the current row (multi mode only)."""
        if not self.multi:
            return
        table = self.query_one(DataTable)
        row = table.cursor_row
        if row is None or self.collection.entry_by_index(row) is None:
            return

        if row in self.marked:
            self.marked.discard(row)
        else:
            self.marked.add(row)
        symbol = SYMBOL_MARKED if row in self.marked else SYMBOL_UNMARKED
        table.update_cell(str(row), "mark", Text(symbol, justify="center"))
        self._update_status()

        if row + 1 < len(self.collection):
            table.cursor_coordinate = Coordinate(row + 1, 0)

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        """Handle Enter key press on DataTable."""
        self.action_select()

    def action_select(self) -> None:
        table = self.query_one(DataTable)
        if self.multi and self.marked:
            chosen = [self.collection.base[i] for i in sorted(self.marked)]
            self.exit(chosen)
            return

        entry = self.collection.entry_by_index(table.cursor_row) if table.cursor_row is not None else None
        self.exit([entry] if entry is not None else None)

    def action_cancel(self) -> None:
        self.exit(None)


def pick_worktrees(
    collection: WorktreeCollection,
    multi: bool = False,
    prompt: str = "Select worktree",
    loader: Optional[StatusLoader] = None,
) -> Optional[List[WorktreeEntry]]:
    """Run the picker and return the chosen entries (None if cancelled)."""
    if not collection.base:
        return None
    app = WorktreePickerApp(collection, multi=multi, prompt=prompt, loader=loader)
    return app.run()
