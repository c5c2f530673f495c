"""QAbstractListModel for the usage detail rows."""

from PySide6.QtCore import QAbstractListModel, QModelIndex, Qt, Slot

from claude_usage_monitor.types.view import DetailRow, UsageViewState


class UsageModel(QAbstractListModel):
    """Exposes the detail rows of the current UsageViewState to QML."""

    KeyRole = Qt.UserRole + 1
    LabelRole = Qt.UserRole + 2
    ValueRole = Qt.UserRole + 3
    IconRole = Qt.UserRole + 4

    def __init__(self, parent=None):
        super().__init__(parent)
        self._rows: list[DetailRow] = []

    def roleNames(self):
        return {
            self.KeyRole: b"rowKey",
            self.LabelRole: b"label",
            self.ValueRole: b"value",
            self.IconRole: b"icon",
        }

    def rowCount(self, parent=QModelIndex()):
        return len(self._rows)

    def data(self, index, role=Qt.DisplayRole):
        if not index.isValid() or index.row() >= len(self._rows):
            return None

        row = self._rows[index.row()]

        if role == self.KeyRole:
            return row.key
        elif role == self.LabelRole:
            return row.label
        elif role == self.ValueRole:
            return row.value
        elif role == self.IconRole:
            return row.icon
        elif role == Qt.DisplayRole:
            return f"{row.label}: {row.value}" if row.value else row.label
        return None

    @Slot(object)
    def apply_view_state(self, state: UsageViewState):
        self.set_rows(list(state.rows))

    def set_rows(self, rows: list[DetailRow]):
        """Update rows in place when the keys match, otherwise reset."""
        if [r.key for r in rows] != [r.key for r in self._rows]:
            self.beginResetModel()
            self._rows = list(rows)
            self.endResetModel()
            return

        for i, row in enumerate(rows):
            if row != self._rows[i]:
                self._rows[i] = row
                idx = self.index(i)
                self.dataChanged.emit(idx, idx)

    @Slot(str, result=int)
    def row_for_key(self, key: str) -> int:
        for i, row in enumerate(self._rows):
            if row.key == key:
                return i
        return -1
