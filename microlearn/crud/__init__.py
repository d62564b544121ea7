from microlearn.crud.chunk import (
    save_chunks,
    get_chunk,
    get_chunks,
    get_chunks_by_topic,
    update_chunk_content,
    deprecate_chunk
)
from microlearn.crud.repetition_state import (
    get_state,
    get_states_for_user,
    get_due_states,
    save_state
)
from microlearn.crud.performance import (
    get_performance,
    get_performance_for_user,
    apply_attempt
)
from microlearn.crud.learning_path import (
    create_learning_path,
    get_learning_path,
    get_learning_path_for_update,
    get_learning_paths,
    find_path_containing
)

__all__ = [
    "save_chunks",
    "get_chunk",
    "get_chunks",
    "get_chunks_by_topic",
    "update_chunk_content",
    "deprecate_chunk",
    "get_state",
    "get_states_for_user",
    "get_due_states",
    "save_state",
    "get_performance",
    "get_performance_for_user",
    "apply_attempt",
    "create_learning_path",
    "get_learning_path",
    "get_learning_path_for_update",
    "get_learning_paths",
    "find_path_containing",
]
