"""Storage module: key-value stores and persisted user state."""

from .kv import (
    KeyValueStore,
    MemoryStore,
    SQLiteStore,
    StorageError,
)
from .state import (
    SCHEMA_VERSION,
    UserState,
    HistoryEntry,
    StoredResult,
    default_user_state,
    migrate_state,
    load_user_state,
    save_user_state,
    load_testing_state,
    save_testing_state,
    clear_testing_state,
    preview_store,
    store_game_result,
    get_stored_result,
    clear_results_for_date,
)

__all__ = [
    'KeyValueStore',
    'MemoryStore',
    'SQLiteStore',
    'StorageError',
    'SCHEMA_VERSION',
    'UserState',
    'HistoryEntry',
    'StoredResult',
    'default_user_state',
    'migrate_state',
    'load_user_state',
    'save_user_state',
    'load_testing_state',
    'save_testing_state',
    'clear_testing_state',
    'preview_store',
    'store_game_result',
    'get_stored_result',
    'clear_results_for_date',
]
