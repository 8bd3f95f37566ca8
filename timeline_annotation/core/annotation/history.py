"""
Undo/redo over reversible commands.

Linear history: executing a new command after undos clears the redo
stack.
"""

from typing import List, Optional
import logging

from .commands import Command, apply_forward, apply_inverse
from .store import AnnotationStore

logger = logging.getLogger(__name__)


class CommandHistory:
    """
    Applies commands to a store and keeps the undo/redo stacks.

    This is the single writer of the store: everything else reads the
    store and builds commands.
    """

    def __init__(self, store: AnnotationStore, limit: Optional[int] = None):
        """
        Initialize the command engine.

        Args:
            store: Store the commands are applied to
            limit: Maximum undo depth, None for unbounded
        """
        self.store = store
        self.limit = limit
        self._undo_stack: List[Command] = []
        self._redo_stack: List[Command] = []

    def execute(self, command: Command) -> Command:
        """Apply a command, push it for undo and drop the redo stack."""
        apply_forward(command, self.store)
        self._undo_stack.append(command)
        self._redo_stack.clear()

        if self.limit is not None and len(self._undo_stack) > self.limit:
            self._undo_stack.pop(0)

        logger.debug(f"Executed {command}")
        return command

    def undo(self) -> Optional[Command]:
        """
        Revert the most recent command.

        Returns:
            The reverted command, or None if there was nothing to undo
        """
        if not self._undo_stack:
            return None
        command = self._undo_stack.pop()
        apply_inverse(command, self.store)
        self._redo_stack.append(command)
        logger.debug(f"Undid {command.name}")
        return command

    def redo(self) -> Optional[Command]:
        """
        Re-apply the most recently undone command.

        Returns:
            The re-applied command, or None if there was nothing to redo
        """
        if not self._redo_stack:
            return None
        command = self._redo_stack.pop()
        apply_forward(command, self.store)
        self._undo_stack.append(command)
        logger.debug(f"Redid {command.name}")
        return command

    def clear(self):
        self._undo_stack.clear()
        self._redo_stack.clear()

    @property
    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    @property
    def undo_depth(self) -> int:
        return len(self._undo_stack)

    @property
    def redo_depth(self) -> int:
        return len(self._redo_stack)
