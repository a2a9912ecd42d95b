"""Write-activity tracking around remote record commands.

This module provides:
- DEFAULT_WRITE_COMMANDS: Command identifiers that mutate clinical records
- WriteActivityTracker: Wraps command dispatch to drive the syncing
  indicator and the last-edited timestamp

For a write command the tracker:
1. sets syncing before dispatch
2. dispatches and waits for the outcome
3. stamps last_edited on success
4. clears syncing after a short delay, whatever the outcome
5. returns the result or re-raises the error unchanged
"""

from __future__ import annotations

import inspect
import logging
import threading
from typing import TYPE_CHECKING, Any

from clinicsync.core.config import StatusConfig

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from clinicsync.client.state import SyncStatusStore

logger = logging.getLogger(__name__)

DEFAULT_WRITE_COMMANDS: frozenset[str] = frozenset(
    {
        # Patients
        "db_create_patient",
        "db_update_patient",
        "db_delete_patient",
        # Appointments
        "db_create_appointment",
        "db_update_appointment",
        "db_delete_appointment",
        # Users
        "db_update_user",
        "db_update_user_settings",
        "db_update_password",
        "db_seed_user_data",
        # Encounters
        "db_create_encounter",
        "db_update_encounter",
        "db_delete_encounter",
        # Patient lists
        "db_create_patient_list",
        "db_update_patient_list",
        "db_delete_patient_list",
        "db_add_patient_to_list",
        "db_remove_patient_from_list",
        # Prescriptions (create is batched)
        "db_create_prescriptions",
        "db_update_prescription",
        "db_delete_prescription",
        # Diagnoses
        "db_create_diagnosis",
        "db_update_diagnosis",
        "db_delete_diagnosis",
        # Allergies
        "db_create_allergy",
        "db_update_allergy",
        "db_delete_allergy",
        # Vaccinations
        "db_create_vaccination",
        "db_update_vaccination",
        "db_delete_vaccination",
        # Social and family history
        "db_create_social_history",
        "db_update_social_history",
        "db_delete_social_history",
        "db_create_family_history",
        "db_update_family_history",
        "db_delete_family_history",
        # Vitals and labs
        "db_create_vitals",
        "db_update_vitals",
        "db_delete_vitals",
        "db_create_lab",
        "db_update_lab",
        "db_delete_lab",
        # Clinical scores
        "db_create_clinical_score",
        "db_update_clinical_score",
        "db_delete_clinical_score",
        # Todos and goals
        "db_create_todo",
        "db_update_todo",
        "db_delete_todo",
        "db_create_goal",
        "db_update_goal",
        "db_delete_goal",
        # Messages
        "db_create_message",
        "db_update_message",
        "db_delete_message",
        "db_create_user_message",
        "db_update_user_message",
        "db_delete_user_message",
        # Timeline
        "db_create_timeline_event",
        "db_update_timeline_event",
        "db_delete_timeline_event",
    }
)


class WriteActivityTracker:
    """Dispatches commands and records write activity on a SyncStatusStore.

    Usage:
        tracker = WriteActivityTracker(store, invoke=command_api.call)
        patient = tracker.invoke("db_create_patient", {"patient": payload})

        # Extensions can register their own mutating commands
        tracker.register_write_command("ext_save_form")
    """

    def __init__(
        self,
        store: SyncStatusStore,
        invoke: Callable[[str, dict[str, Any] | None], Any],
        write_commands: Iterable[str] | None = None,
        config: StatusConfig | None = None,
    ) -> None:
        """Initialize the tracker.

        Args:
            store: Store receiving set_syncing() and touch_last_edited().
            invoke: Collaborator performing the actual command. For ainvoke()
                it must return an awaitable.
            write_commands: Initial write classification
                (DEFAULT_WRITE_COMMANDS if omitted).
            config: Provides syncing_min_visible.
        """
        self._store = store
        self._invoke = invoke
        self._config = config or StatusConfig()
        self._lock = threading.Lock()
        self._write_commands: set[str] = set(
            DEFAULT_WRITE_COMMANDS if write_commands is None else write_commands
        )

    @property
    def write_commands(self) -> frozenset[str]:
        """Snapshot of the current write classification."""
        with self._lock:
            return frozenset(self._write_commands)

    def is_write_command(self, command: str) -> bool:
        with self._lock:
            return command in self._write_commands

    def register_write_command(self, command: str) -> None:
        """Classify an additional command as a write."""
        with self._lock:
            self._write_commands.add(command)
        logger.debug(f"Registered write command: {command}")

    def invoke(self, command: str, args: dict[str, Any] | None = None) -> Any:
        """Dispatch a command through a synchronous collaborator.

        Args:
            command: Command identifier.
            args: Command arguments.

        Returns:
            Whatever the collaborator returned.
        """
        is_write = self._begin(command)
        try:
            result = self._invoke(command, args)
            if is_write:
                self._store.touch_last_edited()
            return result
        finally:
            if is_write:
                self._schedule_syncing_off()

    async def ainvoke(self, command: str, args: dict[str, Any] | None = None) -> Any:
        """Dispatch a command through a coroutine collaborator.

        Same contract as invoke(); the deferred clear never blocks the caller.
        """
        is_write = self._begin(command)
        try:
            pending: Awaitable[Any] | Any = self._invoke(command, args)
            result = await pending if inspect.isawaitable(pending) else pending
            if is_write:
                self._store.touch_last_edited()
            return result
        finally:
            if is_write:
                self._schedule_syncing_off()

    def _begin(self, command: str) -> bool:
        is_write = self.is_write_command(command)
        if is_write:
            logger.debug(f"Write command dispatched: {command}")
            self._store.set_syncing(True)
        return is_write

    def _schedule_syncing_off(self) -> None:
        """Clear the syncing flag after the minimum visible duration."""
        timer = threading.Timer(
            self._config.syncing_min_visible,
            self._store.set_syncing,
            args=(False,),
        )
        timer.daemon = True
        timer.start()
