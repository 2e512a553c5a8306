"""Who may run privileged chat commands."""

from collections.abc import Iterable


class AssignmentEditorPolicy:
    """Allow-list of platform user ids permitted to create class assignments."""

    def __init__(self, editors: Iterable[str]):
        self._editors = frozenset(e.strip() for e in editors if e and e.strip())

    def can_add_assignments(self, external_id: str) -> bool:
        return external_id in self._editors
